"""Ticket domain models.

Manifesto:
    Canonical state is replaced whole on every change, so every model here is
    a frozen dataclass. Edits produce new instances through
    :meth:`Ticket.apply_patch`; nothing mutates a ticket in place.

The wire form (``to_dict`` / ``from_dict``) uses the camelCase keys the remote
gateway and the offline cache exchange (``createdAt``, ``customerTier``,
``_pendingSync``, ...). Python attributes are snake_case.

Tags:
    ticketdesk, models, dataclasses, wire-format

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from ticketdesk.core.errors import ValidationError


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    CLOSED = "closed"


class CustomerTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SyncState(str, Enum):
    """Per-ticket synchronization state.

    ::

        CLEAN ──edit──▶ OPTIMISTIC ──ack──▶ CLEAN
                            │
                         failure
                            ▼
                         PENDING ──replay (any outcome)──▶ CLEAN
    """

    CLEAN = "clean"
    OPTIMISTIC = "optimistic"
    PENDING = "pending"


TICKET_STATUSES: tuple[str, ...] = tuple(s.value for s in TicketStatus)
TICKET_PRIORITIES: tuple[int, ...] = (1, 2, 3, 4, 5)
CUSTOMER_TIERS: tuple[str, ...] = tuple(t.value for t in CustomerTier)

STATUS_LABELS: dict[TicketStatus, str] = {
    TicketStatus.OPEN: "Open",
    TicketStatus.IN_PROGRESS: "In Progress",
    TicketStatus.BLOCKED: "Blocked",
    TicketStatus.CLOSED: "Closed",
}

PRIORITY_LABELS: dict[int, str] = {
    1: "Critical",
    2: "High",
    3: "Medium",
    4: "Low",
    5: "Minimal",
}

# wire key -> attribute, for the fields a patch may touch
PATCH_FIELDS: dict[str, str] = {
    "title": "title",
    "status": "status",
    "priority": "priority",
    "assignee": "assignee",
    "tags": "tags",
    "meta": "meta",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "_blockedReason": "blocked_reason",
    "blockedReason": "blocked_reason",
}


# ---------------------------------------------------------------------------
# Ticket
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TicketMeta:
    """Optional origin metadata."""

    source: str | None = None
    customer_tier: CustomerTier | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.source is not None:
            result["source"] = self.source
        if self.customer_tier is not None:
            result["customerTier"] = self.customer_tier.value
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TicketMeta:
        tier = data.get("customerTier")
        return cls(
            source=data.get("source"),
            customer_tier=CustomerTier(tier) if tier is not None else None,
        )


@dataclass(frozen=True)
class Ticket:
    """The canonical record.

    ``sync_state`` and ``blocked_reason`` are local bookkeeping; the remote
    gateway never supplies them.
    """

    id: str
    title: str
    status: TicketStatus = TicketStatus.OPEN
    priority: int = 3
    assignee: str | None = None
    created_at: str = ""
    updated_at: str = ""
    tags: tuple[str, ...] = ()
    meta: TicketMeta | None = None
    sync_state: SyncState = SyncState.CLEAN
    blocked_reason: str | None = None

    @property
    def pending_sync(self) -> bool:
        return self.sync_state is SyncState.PENDING

    def with_sync_state(self, state: SyncState) -> Ticket:
        if state is self.sync_state:
            return self
        return replace(self, sync_state=state)

    def field_value(self, column: str) -> Any:
        """Value of a column addressed by wire name (``createdAt``) or attribute name."""
        attr = PATCH_FIELDS.get(column, column)
        if attr == "id":
            return self.id
        if attr == "_pendingSync":
            return self.pending_sync
        value = getattr(self, attr, None)
        if isinstance(value, Enum):
            return value.value
        return value

    def apply_patch(self, patch: Mapping[str, Any]) -> Ticket:
        """Return a copy with *patch* (wire keys) applied.

        ``id`` and unknown keys are ignored. Raises ValidationError when a
        status or priority value is outside its enum.
        """
        changes: dict[str, Any] = {}
        for key, value in patch.items():
            attr = PATCH_FIELDS.get(key)
            if attr is None:
                continue
            changes[attr] = _coerce_field(attr, value)
        if not changes:
            return self
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "priority": self.priority,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "tags": list(self.tags),
        }
        if self.assignee is not None:
            result["assignee"] = self.assignee
        if self.meta is not None:
            result["meta"] = self.meta.to_dict()
        if self.pending_sync:
            result["_pendingSync"] = True
        if self.blocked_reason is not None:
            result["_blockedReason"] = self.blocked_reason
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Ticket:
        """Rebuild a ticket from its trusted wire form (cache mirror, snapshots).

        Untrusted input goes through :func:`ticketdesk.sanitizer.sanitize_tickets`.
        """
        meta = data.get("meta")
        return cls(
            id=data["id"],
            title=data["title"],
            status=TicketStatus(data.get("status", "open")),
            priority=int(data.get("priority", 3)),
            assignee=data.get("assignee"),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
            tags=tuple(data.get("tags") or ()),
            meta=TicketMeta.from_dict(meta) if isinstance(meta, Mapping) else None,
            sync_state=SyncState.PENDING if data.get("_pendingSync") else SyncState.CLEAN,
            blocked_reason=data.get("_blockedReason"),
        )


def _coerce_field(attr: str, value: Any) -> Any:
    if attr == "status":
        try:
            return TicketStatus(value)
        except ValueError as e:
            raise ValidationError(f"Invalid status: {value!r}", violations=["invalid_status"], cause=e) from e
    if attr == "priority":
        if isinstance(value, bool) or value not in TICKET_PRIORITIES:
            raise ValidationError(f"Invalid priority: {value!r}", violations=["invalid_priority"])
        return int(value)
    if attr == "tags":
        return tuple(value or ())
    if attr == "meta":
        if value is None or isinstance(value, TicketMeta):
            return value
        return TicketMeta.from_dict(value)
    return value


# ---------------------------------------------------------------------------
# Pending change
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PendingChange:
    """An edit the remote gateway has not confirmed.

    ``ticket_id`` is a weak reference: the ticket may have been replaced or
    removed by a later load. ``timestamp`` (epoch ms) orders the queue;
    ``key`` is assigned by the offline store on append.
    """

    ticket_id: str
    patch: dict[str, Any] = field(default_factory=dict)
    original_updated_at: str = ""
    timestamp: float = 0.0
    key: int | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "ticketId": self.ticket_id,
            "patch": dict(self.patch),
            "originalUpdatedAt": self.original_updated_at,
            "timestamp": self.timestamp,
        }
        if self.key is not None:
            result["id"] = self.key
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PendingChange:
        return cls(
            ticket_id=data["ticketId"],
            patch=dict(data.get("patch") or {}),
            original_updated_at=data.get("originalUpdatedAt", ""),
            timestamp=float(data.get("timestamp", 0.0)),
            key=data.get("id"),
        )


__all__ = [
    "TicketStatus",
    "CustomerTier",
    "SyncState",
    "TICKET_STATUSES",
    "TICKET_PRIORITIES",
    "CUSTOMER_TIERS",
    "STATUS_LABELS",
    "PRIORITY_LABELS",
    "PATCH_FIELDS",
    "TicketMeta",
    "Ticket",
    "PendingChange",
]
