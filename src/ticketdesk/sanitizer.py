"""
Sanitization of untrusted ticket payloads.

Manifesto:
    Everything that enters canonical state passes through here: gateway
    responses, JSON files, cache rows. The input is arbitrary JSON from a
    flaky network or a hostile file, so every function is **total**. It never
    raises, never drops the batch because of one bad element, and never admits
    two tickets with the same id.

Repair policy (per field):

    ============  ==========================================================
    id            trimmed non-empty string, else ``TKT-fallback-<ms>-<n>``
    title         trimmed non-empty string, else ``"Untitled Ticket"``
    status        one of open/in_progress/blocked/closed, else ``open``
    priority      numeric value in 1..5, else ``3``
    assignee      trimmed non-empty string, else absent
    createdAt     valid instant <= now + 1 year, else now
    updatedAt     same rule as createdAt
    tags          strings only, trimmed, lowercased, non-empty, unique
    meta          mapping only; source if str, customerTier if a known tier
    ============  ==========================================================

Duplicates are resolved by keeping the variant whose sanitized ``updatedAt``
is lexically greatest (canonical timestamps sort lexically).

Examples:
    >>> sanitize_tags(["Bug", " bug ", "BUG"])
    ['bug']
    >>> [t.title for t in sanitize_tickets([{"id": "T1"}, "junk", None])]
    ['Untitled Ticket']
"""

from __future__ import annotations

import itertools
import math
import time
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from ticketdesk.core.logging import get_logger
from ticketdesk.core.models import (
    CUSTOMER_TIERS,
    TICKET_PRIORITIES,
    TICKET_STATUSES,
    CustomerTier,
    Ticket,
    TicketMeta,
    TicketStatus,
)
from ticketdesk.core.timestamps import add_years, parse_instant, to_iso8601, utc_now

logger = get_logger(__name__)

UNTITLED = "Untitled Ticket"
DEFAULT_STATUS = TicketStatus.OPEN
DEFAULT_PRIORITY = 3
MAX_FUTURE_YEARS = 1

_fallback_counter = itertools.count(1)


def sanitize_tickets(raw: Any, *, now: datetime | None = None) -> list[Ticket]:
    """Turn an untrusted payload into a list of valid, id-unique tickets.

    Args:
        raw: Anything. Only a list/tuple yields tickets.
        now: Reference instant for date repair (defaults to the current time).
    """
    if not _is_sequence(raw):
        logger.debug("tickets_sanitized", received_type=type(raw).__name__, output=0)
        return []

    now = now or utc_now()
    by_id: dict[str, Ticket] = {}
    dropped = 0
    duplicates = 0

    for item in raw:
        if isinstance(item, Ticket):
            item = item.to_dict()
        if not isinstance(item, Mapping):
            dropped += 1
            continue

        ticket = sanitize_ticket(item, now=now)
        existing = by_id.get(ticket.id)
        if existing is None:
            by_id[ticket.id] = ticket
            continue
        duplicates += 1
        if ticket.updated_at > existing.updated_at:
            by_id[ticket.id] = ticket

    logger.debug(
        "tickets_sanitized",
        received=len(raw),
        output=len(by_id),
        dropped=dropped,
        duplicates=duplicates,
    )
    return list(by_id.values())


def sanitize_ticket(raw: Mapping[str, Any], *, now: datetime | None = None) -> Ticket:
    """Repair a single mapping into a Ticket. Never raises."""
    now = now or utc_now()
    status = sanitize_status(raw.get("status"))
    return Ticket(
        id=_clean_string(raw.get("id")) or generate_fallback_id(),
        title=_clean_string(raw.get("title")) or UNTITLED,
        status=status,
        priority=sanitize_priority(raw.get("priority")),
        assignee=_clean_string(raw.get("assignee")),
        created_at=sanitize_date(raw.get("createdAt"), now=now),
        updated_at=sanitize_date(raw.get("updatedAt"), now=now),
        tags=tuple(sanitize_tags(raw.get("tags"))),
        meta=sanitize_meta(raw.get("meta")),
        blocked_reason=(
            _clean_string(raw.get("_blockedReason")) if status is TicketStatus.BLOCKED else None
        ),
    )


def sanitize_status(value: Any) -> TicketStatus:
    if isinstance(value, str) and value in TICKET_STATUSES:
        return TicketStatus(value)
    return DEFAULT_STATUS


def sanitize_priority(value: Any) -> int:
    number = _to_number(value)
    if number is not None and number in TICKET_PRIORITIES:
        return int(number)
    return DEFAULT_PRIORITY


def sanitize_date(value: Any, *, now: datetime | None = None) -> str:
    """Canonical timestamp for *value*, or *now* when it is unusable.

    Rejected: non-strings, unparseable strings, and instants more than one
    year after *now*.
    """
    now = now or utc_now()
    parsed = parse_instant(value)
    if parsed is None or parsed > add_years(now, MAX_FUTURE_YEARS):
        return to_iso8601(now)
    return to_iso8601(parsed)


def sanitize_tags(tags: Any) -> list[str]:
    if not _is_sequence(tags):
        return []
    normalized: dict[str, None] = {}
    for tag in tags:
        if isinstance(tag, str):
            clean = tag.strip().lower()
            if clean:
                normalized.setdefault(clean, None)
    return list(normalized)


def sanitize_meta(meta: Any) -> TicketMeta | None:
    if not isinstance(meta, Mapping):
        return None
    source = meta.get("source")
    tier = meta.get("customerTier")
    return TicketMeta(
        source=source if isinstance(source, str) else None,
        customer_tier=CustomerTier(tier) if isinstance(tier, str) and tier in CUSTOMER_TIERS else None,
    )


def generate_fallback_id() -> str:
    """Unique id for records that arrive without one.

    The counter is process-wide, so ids stay unique even when many are
    generated within the same millisecond.
    """
    return f"TKT-fallback-{int(time.time() * 1000)}-{next(_fallback_counter)}"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _clean_string(value: Any) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    return None


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


__all__ = [
    "UNTITLED",
    "sanitize_tickets",
    "sanitize_ticket",
    "sanitize_status",
    "sanitize_priority",
    "sanitize_date",
    "sanitize_tags",
    "sanitize_meta",
    "generate_fallback_id",
]
