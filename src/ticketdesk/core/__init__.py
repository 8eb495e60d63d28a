"""ticketdesk core -- models, errors, logging, settings and live values.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (TicketDeskError, GatewayError, ...)
        timestamps.py      Canonical ISO-8601 encode/parse (stdlib-only)
        models.py          Ticket, TicketMeta, PendingChange, SyncState
        filters.py         TicketFilters, SortKey, default columns

    Layer 2 -- Cross-Cutting Concerns
        logging.py         Structured logging (structlog)
        settings.py        TicketDeskSettings (pydantic-settings)
        reactive.py        Stream / LiveValue (replay-latest, distinct-until-changed)

Nothing in this package performs I/O; the storage, gateway and store
modules build on it.
"""

from ticketdesk.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    GatewayError,
    NetworkError,
    StorageError,
    TicketDeskError,
    TransientError,
    ValidationError,
    categorize_error,
    is_retryable,
)
from ticketdesk.core.filters import (
    DEFAULT_COLUMNS,
    DEFAULT_SORT,
    INITIAL_FILTERS,
    DateRange,
    SortDirection,
    SortKey,
    TicketFilters,
)
from ticketdesk.core.models import (
    PRIORITY_LABELS,
    STATUS_LABELS,
    TICKET_PRIORITIES,
    TICKET_STATUSES,
    CustomerTier,
    PendingChange,
    SyncState,
    Ticket,
    TicketMeta,
    TicketStatus,
)
from ticketdesk.core.reactive import LiveValue, Stream, Subscription

__all__ = [
    # errors
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "GatewayError",
    "NetworkError",
    "StorageError",
    "TicketDeskError",
    "TransientError",
    "ValidationError",
    "categorize_error",
    "is_retryable",
    # filters
    "DEFAULT_COLUMNS",
    "DEFAULT_SORT",
    "INITIAL_FILTERS",
    "DateRange",
    "SortDirection",
    "SortKey",
    "TicketFilters",
    # models
    "PRIORITY_LABELS",
    "STATUS_LABELS",
    "TICKET_PRIORITIES",
    "TICKET_STATUSES",
    "CustomerTier",
    "PendingChange",
    "SyncState",
    "Ticket",
    "TicketMeta",
    "TicketStatus",
    # reactive
    "LiveValue",
    "Stream",
    "Subscription",
]
