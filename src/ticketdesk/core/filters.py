"""View configuration: filters, sort keys and visible columns.

These are ephemeral and never persisted. The store keeps them in its state
next to the tickets so that projections recompute whenever either changes.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from ticketdesk.core.models import TicketStatus


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortKey:
    """One entry of a multi-key sort specification."""

    column: str
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def parse(cls, text: str) -> SortKey:
        """Parse ``column`` or ``column:asc|desc``."""
        column, _, direction = text.partition(":")
        return cls(column.strip(), SortDirection(direction.strip().lower() or "asc"))


@dataclass(frozen=True)
class DateRange:
    """Inclusive ``createdAt`` bounds (ISO date or datetime strings)."""

    from_: str | None = None
    to: str | None = None


@dataclass(frozen=True)
class TicketFilters:
    search_text: str = ""
    statuses: tuple[TicketStatus, ...] = ()
    priorities: tuple[int, ...] = ()
    tags: tuple[str, ...] = ()
    date_range: DateRange = DateRange()

    def merged(self, **changes: Any) -> TicketFilters:
        """Shallow-merge *changes* (a partial filter update) into a new instance.

        Sequences are frozen to tuples; ``date_range`` may be a DateRange or a
        mapping with ``from``/``from_``/``to`` keys merged over the current range.
        """
        normalized: dict[str, Any] = {}
        for key, value in changes.items():
            if key == "search_text":
                normalized[key] = value or ""
            elif key == "statuses":
                normalized[key] = tuple(TicketStatus(s) for s in _iter(value))
            elif key == "priorities":
                normalized[key] = tuple(int(p) for p in _iter(value))
            elif key == "tags":
                normalized[key] = tuple(_iter(value))
            elif key == "date_range":
                normalized[key] = self._merge_range(value)
            else:
                raise TypeError(f"unknown filter field: {key}")
        return replace(self, **normalized)

    def _merge_range(self, value: DateRange | Mapping[str, Any] | None) -> DateRange:
        if value is None:
            return DateRange()
        if isinstance(value, DateRange):
            return value
        current = self.date_range
        from_ = value.get("from_", value.get("from", current.from_))
        return DateRange(from_=from_ or None, to=value.get("to", current.to) or None)


def _iter(value: Iterable[Any] | None) -> Iterable[Any]:
    if value is None:
        return ()
    if isinstance(value, (str, int)):
        return (value,)
    return value


INITIAL_FILTERS = TicketFilters()

DEFAULT_SORT: tuple[SortKey, ...] = (SortKey("createdAt", SortDirection.DESC),)

DEFAULT_COLUMNS: tuple[str, ...] = (
    "id",
    "title",
    "status",
    "priority",
    "assignee",
    "createdAt",
    "tags",
)

__all__ = [
    "SortDirection",
    "SortKey",
    "DateRange",
    "TicketFilters",
    "INITIAL_FILTERS",
    "DEFAULT_SORT",
    "DEFAULT_COLUMNS",
]
