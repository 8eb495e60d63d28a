"""
View projection: filtering, multi-key sorting and column bookkeeping.

Pure functions over immutable inputs. The store wires them into its derived
streams; nothing here touches state.

Filter pipeline (each stage skipped when its criterion is empty)::

    title contains search_text (case-insensitive)
      → status in statuses
      → priority in priorities
      → any tag in tags
      → createdAt >= date_range.from_
      → createdAt <= date_range.to

Sorting evaluates the keys in order; the first non-zero comparison decides.
``sorted`` is stable, so fully tied tickets keep their relative order.
Missing values sort first in both directions.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable, Sequence
from datetime import datetime
from enum import Enum
from typing import Any

from ticketdesk.core.filters import SortDirection, SortKey, TicketFilters
from ticketdesk.core.models import Ticket
from ticketdesk.core.timestamps import parse_instant


def project(
    tickets: Sequence[Ticket],
    filters: TicketFilters,
    sort: Sequence[SortKey],
) -> tuple[Ticket, ...]:
    """Filtered and sorted view of *tickets*."""
    return tuple(sort_tickets(apply_filters(tickets, filters), sort))


def apply_filters(tickets: Iterable[Ticket], filters: TicketFilters) -> list[Ticket]:
    result = list(tickets)

    if filters.search_text:
        term = filters.search_text.lower()
        result = [t for t in result if term in t.title.lower()]

    if filters.statuses:
        statuses = set(filters.statuses)
        result = [t for t in result if t.status in statuses]

    if filters.priorities:
        priorities = set(filters.priorities)
        result = [t for t in result if t.priority in priorities]

    if filters.tags:
        wanted = set(filters.tags)
        result = [t for t in result if wanted.intersection(t.tags)]

    lower = parse_instant(filters.date_range.from_)
    if lower is not None:
        result = [t for t in result if _created_between(t, lower, None)]

    upper = parse_instant(filters.date_range.to)
    if upper is not None:
        result = [t for t in result if _created_between(t, None, upper)]

    return result


def sort_tickets(tickets: Iterable[Ticket], sort: Sequence[SortKey]) -> list[Ticket]:
    if not sort:
        return list(tickets)

    def compare(a: Ticket, b: Ticket) -> int:
        for key in sort:
            left = a.field_value(key.column)
            right = b.field_value(key.column)
            cmp = compare_values(left, right)
            # missing values lead regardless of direction
            if key.direction is SortDirection.DESC and left is not None and right is not None:
                cmp = -cmp
            if cmp:
                return cmp
        return 0

    return sorted(tickets, key=functools.cmp_to_key(compare))


def compare_values(a: Any, b: Any) -> int:
    """Three-way comparison: None first, numbers numerically, else as text."""
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    if _is_number(a) and _is_number(b):
        return (a > b) - (a < b)
    left, right = _as_text(a), _as_text(b)
    return (left > right) - (left < right)


def toggle_sort(sort: Sequence[SortKey], column: str) -> tuple[SortKey, ...]:
    """Cycle *column* through absent → asc → desc → absent.

    A newly added column becomes the lowest-priority key.
    """
    existing = next((key for key in sort if key.column == column), None)
    if existing is None:
        return (*sort, SortKey(column, SortDirection.ASC))
    if existing.direction is SortDirection.ASC:
        return tuple(
            SortKey(column, SortDirection.DESC) if key.column == column else key
            for key in sort
        )
    return tuple(key for key in sort if key.column != column)


def toggle_column(columns: Sequence[str], column: str) -> tuple[str, ...]:
    if column in columns:
        return tuple(c for c in columns if c != column)
    return (*columns, column)


def collect_tags(tickets: Iterable[Ticket]) -> tuple[str, ...]:
    """Distinct tags across *tickets*, ascending."""
    tags: set[str] = set()
    for ticket in tickets:
        tags.update(ticket.tags)
    return tuple(sorted(tags))


def find_ticket(tickets: Iterable[Ticket], ticket_id: str | None) -> Ticket | None:
    if ticket_id is None:
        return None
    return next((t for t in tickets if t.id == ticket_id), None)


def _created_between(ticket: Ticket, lower: datetime | None, upper: datetime | None) -> bool:
    created = parse_instant(ticket.created_at)
    if created is None:
        return False
    if lower is not None and created < lower:
        return False
    if upper is not None and created > upper:
        return False
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (tuple, list)):
        return ",".join(_as_text(v) for v in value)
    return str(value)


__all__ = [
    "project",
    "apply_filters",
    "sort_tickets",
    "compare_values",
    "toggle_sort",
    "toggle_column",
    "collect_tags",
    "find_ticket",
]
