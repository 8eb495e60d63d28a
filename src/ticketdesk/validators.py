"""Edit rules checked before an edit is submitted.

The store applies whatever patch it is given; these rules are for callers
that collect edits from a person (the CLI's ``edit`` command).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ticketdesk.core.errors import ValidationError
from ticketdesk.core.models import Ticket, TicketStatus

BLOCKED_NEEDS_REASON = "blocked_needs_reason"
PRIORITY_ONE_NEEDS_ASSIGNEE = "priority_one_needs_assignee"
TITLE_TOO_SHORT = "title_too_short"

MIN_TITLE_LENGTH = 10


def blocked_needs_reason(ticket: Ticket) -> bool:
    """A blocked ticket must say why."""
    return ticket.status is TicketStatus.BLOCKED and not (ticket.blocked_reason or "").strip()


def priority_one_needs_assignee(ticket: Ticket) -> bool:
    """A critical ticket must have an owner."""
    return ticket.priority == 1 and not (ticket.assignee or "").strip()


def validate_edit(ticket: Ticket, patch: Mapping[str, Any]) -> list[str]:
    """Violation codes for *ticket* after applying *patch*; empty when valid."""
    edited = ticket.apply_patch(patch)
    violations = []
    if "title" in patch and len(edited.title.strip()) < MIN_TITLE_LENGTH:
        violations.append(TITLE_TOO_SHORT)
    if blocked_needs_reason(edited):
        violations.append(BLOCKED_NEEDS_REASON)
    if priority_one_needs_assignee(edited):
        violations.append(PRIORITY_ONE_NEEDS_ASSIGNEE)
    return violations


def require_valid_edit(ticket: Ticket, patch: Mapping[str, Any]) -> None:
    """Raise ValidationError when :func:`validate_edit` reports violations."""
    violations = validate_edit(ticket, patch)
    if violations:
        raise ValidationError(
            f"Edit rejected: {', '.join(violations)}",
            violations=violations,
        ).with_context(ticket_id=ticket.id, operation="edit")


__all__ = [
    "BLOCKED_NEEDS_REASON",
    "PRIORITY_ONE_NEEDS_ASSIGNEE",
    "TITLE_TOO_SHORT",
    "MIN_TITLE_LENGTH",
    "blocked_needs_reason",
    "priority_one_needs_assignee",
    "validate_edit",
    "require_valid_edit",
]
