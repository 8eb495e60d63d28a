"""Offline store contract consumed by the sync engine.

Two logical stores live behind one object:

- **Ticket mirror**: last-known-good ticket set keyed by id. Bulk replace,
  bulk read, single upsert. A copy of canonical state, never written by
  anything but the store.
- **Pending queue**: unconfirmed edits keyed by an auto-assigned sequence
  number and read back ordered by enqueue timestamp.

All methods are coroutines. The store awaits mirror writes as best-effort
(failures are logged, not raised) and queue appends as must-complete.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from ticketdesk.core.models import PendingChange, Ticket

SCHEMA_VERSION = 1


@runtime_checkable
class OfflineStore(Protocol):
    """Durable cache for the ticket mirror and the pending-change queue."""

    # ── Ticket mirror ────────────────────────────────────────────

    async def replace_all(self, tickets: Sequence[Ticket]) -> None:
        """Replace the whole mirror with *tickets*."""
        ...

    async def read_all(self) -> list[Ticket]:
        """Every mirrored ticket, in mirror order."""
        ...

    async def upsert_one(self, ticket: Ticket) -> None:
        """Insert or overwrite one mirrored ticket."""
        ...

    # ── Pending queue ────────────────────────────────────────────

    async def append(self, change: PendingChange) -> int:
        """Enqueue *change*; returns the assigned key."""
        ...

    async def read_pending(self) -> list[PendingChange]:
        """All queued changes, oldest timestamp first (key breaks ties)."""
        ...

    async def remove(self, key: int) -> None:
        """Delete one queued change. Unknown keys are ignored."""
        ...

    async def count(self) -> int:
        """Number of queued changes."""
        ...

    async def clear_pending(self) -> None:
        """Drop every queued change."""
        ...

    async def close(self) -> None:
        ...


__all__ = ["OfflineStore", "SCHEMA_VERSION"]
