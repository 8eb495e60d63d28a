"""
In-memory offline store.

Manifesto:
    Tests and short-lived CLI sessions need the offline store contract
    without a database file. Nothing survives the process.

Tags:
    ticketdesk, storage, in-memory, testing
"""

from __future__ import annotations

import itertools
from collections.abc import Sequence
from dataclasses import replace

from ticketdesk.core.models import PendingChange, Ticket

__all__ = ["InMemoryOfflineStore"]


class InMemoryOfflineStore:
    """Dict-backed :class:`~ticketdesk.storage.base.OfflineStore`."""

    def __init__(self) -> None:
        self._tickets: dict[str, Ticket] = {}
        self._queue: dict[int, PendingChange] = {}
        self._keys = itertools.count(1)

    async def replace_all(self, tickets: Sequence[Ticket]) -> None:
        self._tickets = {ticket.id: ticket for ticket in tickets}

    async def read_all(self) -> list[Ticket]:
        return list(self._tickets.values())

    async def upsert_one(self, ticket: Ticket) -> None:
        self._tickets[ticket.id] = ticket

    async def append(self, change: PendingChange) -> int:
        key = next(self._keys)
        self._queue[key] = replace(change, key=key)
        return key

    async def read_pending(self) -> list[PendingChange]:
        return sorted(self._queue.values(), key=lambda c: (c.timestamp, c.key))

    async def remove(self, key: int) -> None:
        self._queue.pop(key, None)

    async def count(self) -> int:
        return len(self._queue)

    async def clear_pending(self) -> None:
        self._queue.clear()

    async def close(self) -> None:
        pass

    @property
    def ticket_count(self) -> int:
        return len(self._tickets)
