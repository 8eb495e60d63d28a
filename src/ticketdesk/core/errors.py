"""
Structured error types for ticketdesk.

Every failure the sync engine can observe is classified here: transport
failures from the remote gateway, storage failures from the offline cache,
validation failures on edits, and configuration problems. Each error carries:

- **Category:** What kind of error (network, storage, validation, ...)
- **Retryable:** Whether the operation could succeed if attempted again
- **Retry-after:** Optional hint (seconds) for the next attempt
- **Context:** Ticket id, operation name, source and free-form metadata
- **Cause:** Chained underlying exception for root cause analysis

Architecture::

    TicketDeskError  (category, retryable, retry_after, context, cause)
    ├── TransientError        retryable=True
    │   ├── NetworkError      NETWORK
    │   └── GatewayError      SOURCE (remote gateway fetch/update failed)
    ├── StorageError          STORAGE (offline cache unavailable/corrupt)
    ├── ValidationError       VALIDATION (edit rejected, never retryable)
    └── ConfigError           CONFIG (never retryable)

Guardrails:
    ❌ DON'T: Raise from the sanitizer; malformed input is repaired, not rejected
    ✅ DO: Raise GatewayError from gateways and let the store recover locally

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Usage:
    from ticketdesk.core.errors import GatewayError

    try:
        payload = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        raise GatewayError("Failed to read tickets", cause=e).with_context(path=str(path))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing.

    Attributes:
        NETWORK: Connection, timeout, DNS errors
        STORAGE: Offline cache / sqlite errors
        SOURCE: Remote gateway returned an error or garbage
        VALIDATION: Edit rules violated
        CONFIG: Missing or invalid settings
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    NETWORK = "NETWORK"
    STORAGE = "STORAGE"
    SOURCE = "SOURCE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        ticket_id: Ticket the failing operation targeted
        operation: Store/gateway/cache operation name (``load``, ``update_one``, ...)
        source_name: Gateway or backend name
        path: Filesystem path involved (cache db, tickets file)
        metadata: Additional key-value pairs
    """

    ticket_id: str | None = None
    operation: str | None = None
    source_name: str | None = None
    path: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["ticket_id", "operation", "source_name", "path"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class TicketDeskError(Exception):
    """Base exception for all ticketdesk errors.

    Subclasses set ``default_category`` and ``default_retryable`` so callers
    rarely need to pass them explicitly.
    """

    default_category: ErrorCategory = ErrorCategory.UNKNOWN
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> TicketDeskError:
        """Add context fields; unknown keys land in ``metadata``. Returns self."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context = self.context.to_dict()
        if context:
            result["context"] = context
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS
# =============================================================================


class TransientError(TicketDeskError):
    """Temporary failure; the same call may succeed later."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class NetworkError(TransientError):
    """Host unreachable, connection reset, DNS failure."""

    default_category = ErrorCategory.NETWORK


class GatewayError(TransientError):
    """The remote gateway failed a fetch-all or update-one call."""

    default_category = ErrorCategory.SOURCE


# =============================================================================
# LOCAL ERRORS
# =============================================================================


class StorageError(TicketDeskError):
    """The offline cache could not be opened, read or written."""

    default_category = ErrorCategory.STORAGE


class ValidationError(TicketDeskError):
    """An edit violates one or more ticket rules."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, violations: list[str] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.violations = list(violations or [])

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.violations:
            result["violations"] = self.violations
        return result


class ConfigError(TicketDeskError):
    """Invalid or missing configuration."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# HELPERS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Return True when *error* is marked retryable.

    Plain ``ConnectionError`` / ``TimeoutError`` from the stdlib count as
    retryable too, since gateways may let them escape.
    """
    if isinstance(error, TicketDeskError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Best-effort category for any exception."""
    if isinstance(error, TicketDeskError):
        return error.category
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorCategory.NETWORK
    if isinstance(error, OSError):
        return ErrorCategory.STORAGE
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "TicketDeskError",
    "TransientError",
    "NetworkError",
    "GatewayError",
    "StorageError",
    "ValidationError",
    "ConfigError",
    "is_retryable",
    "categorize_error",
]
