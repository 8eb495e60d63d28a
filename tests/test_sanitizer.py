"""Tests for ticketdesk.sanitizer: total repair of untrusted ticket payloads."""

from datetime import UTC, datetime

import pytest

from ticketdesk.core.models import CustomerTier, SyncState, Ticket, TicketMeta, TicketStatus
from ticketdesk.sanitizer import (
    UNTITLED,
    generate_fallback_id,
    sanitize_date,
    sanitize_meta,
    sanitize_priority,
    sanitize_status,
    sanitize_tags,
    sanitize_ticket,
    sanitize_tickets,
)

NOW = datetime(2024, 9, 1, 12, 0, 0, tzinfo=UTC)
NOW_ISO = "2024-09-01T12:00:00.000Z"


class TestSanitizeTickets:
    @pytest.mark.parametrize("payload", [None, 42, "tickets", {"id": "TKT-1"}, b"[]", 3.5])
    def test_non_list_yields_empty(self, payload):
        assert sanitize_tickets(payload, now=NOW) == []

    def test_non_mapping_elements_dropped(self):
        tickets = sanitize_tickets([None, 1, "x", ["a"], {"id": "TKT-1", "title": "Valid"}], now=NOW)
        assert [t.id for t in tickets] == ["TKT-1"]

    def test_every_output_is_valid(self, raw_tickets):
        garbage = [
            {},
            {"id": 7, "title": None, "status": "done", "priority": "high", "tags": "bug"},
            {"id": "  ", "createdAt": "yesterday", "updatedAt": 12345},
        ]
        for ticket in sanitize_tickets(raw_tickets + garbage, now=NOW):
            assert ticket.id.strip()
            assert ticket.title.strip()
            assert ticket.status in TicketStatus
            assert 1 <= ticket.priority <= 5
            assert ticket.sync_state is SyncState.CLEAN
            assert len(ticket.created_at) == 24

    def test_ids_are_unique(self, raw_tickets):
        tickets = sanitize_tickets(raw_tickets + raw_tickets + [{}, {}], now=NOW)
        ids = [t.id for t in tickets]
        assert len(ids) == len(set(ids))

    def test_clean_input_round_trips(self, raw_tickets):
        tickets = sanitize_tickets(raw_tickets, now=NOW)
        assert [t.to_dict() for t in tickets] == raw_tickets

    def test_idempotent(self, raw_tickets):
        once = sanitize_tickets(raw_tickets + [{"title": " x ", "tags": ["A", "a"]}], now=NOW)
        twice = sanitize_tickets([t.to_dict() for t in once], now=NOW)
        assert twice == once

    def test_accepts_ticket_instances(self):
        ticket = Ticket(id="TKT-1", title="Existing", created_at=NOW_ISO, updated_at=NOW_ISO)
        assert sanitize_tickets([ticket], now=NOW) == [ticket]

    def test_untrusted_pending_flag_ignored(self):
        tickets = sanitize_tickets([{"id": "TKT-1", "title": "x", "_pendingSync": True}], now=NOW)
        assert tickets[0].sync_state is SyncState.CLEAN


class TestDeduplication:
    def test_newest_updated_at_wins(self):
        raw = [
            {"id": "TKT-1", "title": "First", "updatedAt": "2024-01-01T00:00:00.000Z"},
            {"id": "TKT-2", "title": "Other", "updatedAt": "2024-01-01T00:00:00.000Z"},
            {"id": "TKT-1", "title": "Newer", "updatedAt": "2024-06-01T00:00:00.000Z"},
            {"id": "TKT-1", "title": "Older", "updatedAt": "2023-06-01T00:00:00.000Z"},
        ]
        tickets = sanitize_tickets(raw, now=NOW)
        assert [(t.id, t.title) for t in tickets] == [("TKT-1", "Newer"), ("TKT-2", "Other")]

    def test_tie_keeps_first(self):
        raw = [
            {"id": "TKT-1", "title": "First", "updatedAt": "2024-01-01T00:00:00.000Z"},
            {"id": "TKT-1", "title": "Second", "updatedAt": "2024-01-01T00:00:00.000Z"},
        ]
        assert sanitize_tickets(raw, now=NOW)[0].title == "First"

    def test_ids_compared_after_trimming(self):
        raw = [
            {"id": " TKT-1 ", "title": "Padded", "updatedAt": "2024-03-01T00:00:00.000Z"},
            {"id": "TKT-1", "title": "Plain", "updatedAt": "2024-02-01T00:00:00.000Z"},
        ]
        tickets = sanitize_tickets(raw, now=NOW)
        assert len(tickets) == 1
        assert tickets[0].title == "Padded"


class TestSanitizeTicket:
    def test_missing_fields_repaired(self):
        ticket = sanitize_ticket({}, now=NOW)
        assert ticket.id.startswith("TKT-fallback-")
        assert ticket.title == UNTITLED
        assert ticket.status is TicketStatus.OPEN
        assert ticket.priority == 3
        assert ticket.assignee is None
        assert ticket.created_at == NOW_ISO
        assert ticket.updated_at == NOW_ISO
        assert ticket.tags == ()
        assert ticket.meta is None

    def test_strings_trimmed(self):
        ticket = sanitize_ticket({"id": " TKT-9 ", "title": "  Crash  ", "assignee": "  "}, now=NOW)
        assert ticket.id == "TKT-9"
        assert ticket.title == "Crash"
        assert ticket.assignee is None

    def test_blocked_reason_only_kept_when_blocked(self):
        blocked = sanitize_ticket({"id": "A", "status": "blocked", "_blockedReason": " vendor "}, now=NOW)
        opened = sanitize_ticket({"id": "B", "status": "open", "_blockedReason": "vendor"}, now=NOW)
        assert blocked.blocked_reason == "vendor"
        assert opened.blocked_reason is None


class TestFieldSanitizers:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("open", TicketStatus.OPEN),
            ("in_progress", TicketStatus.IN_PROGRESS),
            ("OPEN", TicketStatus.OPEN),
            ("done", TicketStatus.OPEN),
            (None, TicketStatus.OPEN),
            ("closed", TicketStatus.CLOSED),
        ],
    )
    def test_status(self, value, expected):
        assert sanitize_status(value) is expected

    @pytest.mark.parametrize(
        "value, expected",
        [(1, 1), (5, 5), ("2", 2), (4.0, 4), (0, 3), (6, 3), (2.5, 3), ("high", 3), (None, 3), (True, 3), ("nan", 3), ("1e999", 3)],
    )
    def test_priority(self, value, expected):
        assert sanitize_priority(value) == expected

    def test_date_valid_normalized(self):
        assert sanitize_date("2024-06-15T12:00:00+02:00", now=NOW) == "2024-06-15T10:00:00.000Z"
        assert sanitize_date("2024-06-15", now=NOW) == "2024-06-15T00:00:00.000Z"

    @pytest.mark.parametrize(
        "value", ["not-a-date", "2024-13-45", "2024/01/01", "", "yesterday", "null", "2024-02-30T00:00:00.000Z", None, 1700000000]
    )
    def test_date_invalid_replaced_with_now(self, value):
        assert sanitize_date(value, now=NOW) == NOW_ISO

    def test_date_too_far_in_future(self):
        assert sanitize_date("2030-01-01T00:00:00.000Z", now=NOW) == NOW_ISO
        assert sanitize_date("2025-08-31T00:00:00.000Z", now=NOW) == "2025-08-31T00:00:00.000Z"

    def test_tags_normalized(self):
        assert sanitize_tags(["Bug", " bug ", "BUG", "", "  ", 5, None, "Frontend"]) == ["bug", "frontend"]

    @pytest.mark.parametrize("value", [None, "bug", 3, {"bug": True}])
    def test_tags_non_list(self, value):
        assert sanitize_tags(value) == []

    def test_meta(self):
        assert sanitize_meta({"source": "web", "customerTier": "pro"}) == TicketMeta("web", CustomerTier.PRO)
        assert sanitize_meta({"source": 5, "customerTier": "platinum"}) == TicketMeta()
        assert sanitize_meta("meta") is None

    def test_fallback_ids_unique(self):
        ids = {generate_fallback_id() for _ in range(100)}
        assert len(ids) == 100
