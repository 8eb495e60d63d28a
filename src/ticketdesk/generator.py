"""Synthetic ticket payloads with deliberately bad records.

Produces the kind of file the sanitizer exists for: mostly clean tickets,
plus batches with invalid dates, missing fields, messy tags and duplicate
ids, shuffled together. Pass ``seed`` for reproducible output.
"""

from __future__ import annotations

import json
import random
import string
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from ticketdesk.core.models import CUSTOMER_TIERS, TICKET_PRIORITIES, TICKET_STATUSES
from ticketdesk.core.timestamps import to_iso8601

SOURCES = ("email", "web", "api", "phone", "chat", "slack")

TAGS = (
    "bug", "feature", "urgent", "backend", "frontend",
    "security", "performance", "documentation", "ux", "api",
    "database", "auth", "deployment", "monitoring", "refactor",
    "mobile", "infrastructure", "testing", "accessibility", "design",
    "billing", "onboarding", "integration", "analytics", "compliance",
)

ASSIGNEES = (
    "Alice Johnson", "Bob Smith", "Carlos Garcia", "Diana Chen",
    "Erik Müller", "Fatima Al-Hassan", "George Kim", "Hannah Patel",
    "Ivan Petrov", "Julia Santos", "Kevin O'Brien", "Laura Svensson",
    "Marco Rossi", "Nina Takahashi", "Oscar Fernandez", "Patricia Wood",
    "Raj Sharma", "Sofia Martinez", "Thomas Anderson", "Uma Krishnan",
)

TITLE_PREFIXES = (
    "Fix", "Update", "Investigate", "Implement", "Resolve",
    "Optimize", "Add", "Remove", "Refactor", "Debug",
    "Review", "Configure", "Deploy", "Migrate", "Test",
)

TITLE_SUBJECTS = (
    "login page authentication flow",
    "database connection pooling timeout",
    "payment processing error handling",
    "user dashboard loading performance",
    "email notification delivery system",
    "API rate limiting configuration",
    "file upload size validation",
    "search index rebuild process",
    "session management timeout policy",
    "cache invalidation strategy",
    "error logging and monitoring setup",
    "password reset token expiration",
    "data export CSV formatting",
    "webhook retry mechanism",
    "user role permissions matrix",
)

BAD_DATES = (
    "not-a-date",
    "2024-13-45",
    "2024/01/01",
    "",
    "yesterday",
    "1234567890",
    "null",
    "2024-02-30T00:00:00.000Z",
    "Invalid Date",
    "00-00-0000",
)

MESSY_TAGS = (
    ["Bug", "bug", "BUG"],
    [" frontend ", "Frontend", "FRONTEND"],
    ["urgent", "URGENT", "  urgent  "],
    ["api", "API", "Api", " api"],
    ["", "  ", "bug", "bug"],
)

_ID_CHARS = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class GenerationStats:
    total: int
    bad_dates: int
    missing_fields: int
    inconsistent_tags: int
    duplicate_ids: int


class TicketGenerator:
    def __init__(self, seed: int | None = None):
        self._rng = random.Random(seed)

    def generate(
        self,
        count: int = 10_500,
        *,
        bad_dates: int = 200,
        missing_fields: int = 200,
        inconsistent_tags: int = 200,
        duplicate_ids: int = 100,
    ) -> list[dict[str, Any]]:
        ids = self._unique_ids(count)
        corruptions = (
            [self._bad_date] * bad_dates
            + [self._missing_fields] * missing_fields
            + [self._messy_tags] * inconsistent_tags
        )
        tickets = []
        for index, ticket_id in enumerate(ids):
            ticket = self.clean_ticket(ticket_id)
            if index < len(corruptions):
                corruptions[index](ticket)
            tickets.append(ticket)

        for _ in range(duplicate_ids if tickets else 0):
            dupe = dict(self._rng.choice(tickets))
            dupe["title"] = self._title()
            dupe["updatedAt"] = self._date(2024, 2025)
            tickets.append(dupe)

        self._rng.shuffle(tickets)
        return tickets

    def clean_ticket(self, ticket_id: str) -> dict[str, Any]:
        created = self._instant(2023, 2025)
        updated = created + timedelta(milliseconds=self._rng.randint(0, 30 * 24 * 3600 * 1000))
        ticket: dict[str, Any] = {
            "id": ticket_id,
            "title": self._title(),
            "status": self._rng.choice(TICKET_STATUSES),
            "priority": self._rng.choice(TICKET_PRIORITIES),
            "createdAt": to_iso8601(created),
            "updatedAt": to_iso8601(updated),
            "tags": self._rng.sample(TAGS, self._rng.randint(1, 4)),
        }
        if self._rng.random() < 0.7:
            ticket["assignee"] = self._rng.choice(ASSIGNEES)
        if self._rng.random() < 0.6:
            ticket["meta"] = {
                "source": self._rng.choice(SOURCES),
                "customerTier": self._rng.choice(CUSTOMER_TIERS),
            }
        return ticket

    # ── Corruptions ──────────────────────────────────────────────

    def _bad_date(self, ticket: dict[str, Any]) -> None:
        ticket["createdAt"] = self._rng.choice(BAD_DATES)
        if self._rng.random() > 0.5:
            ticket["updatedAt"] = self._rng.choice(BAD_DATES)

    def _missing_fields(self, ticket: dict[str, Any]) -> None:
        for field in self._rng.sample(("title", "status", "priority", "tags"), self._rng.randint(1, 2)):
            del ticket[field]

    def _messy_tags(self, ticket: dict[str, Any]) -> None:
        ticket["tags"] = list(self._rng.choice(MESSY_TAGS))

    # ── Helpers ──────────────────────────────────────────────────

    def _unique_ids(self, count: int) -> list[str]:
        ids: dict[str, None] = {}
        while len(ids) < count:
            ids.setdefault("TKT-" + "".join(self._rng.choices(_ID_CHARS, k=8)), None)
        return list(ids)

    def _title(self) -> str:
        return f"{self._rng.choice(TITLE_PREFIXES)} {self._rng.choice(TITLE_SUBJECTS)}"

    def _instant(self, start_year: int, end_year: int) -> datetime:
        start = datetime(start_year, 1, 1, tzinfo=UTC)
        end = datetime(end_year, 12, 31, tzinfo=UTC)
        return start + (end - start) * self._rng.random()

    def _date(self, start_year: int, end_year: int) -> str:
        return to_iso8601(self._instant(start_year, end_year))


def write_tickets(
    path: str | Path,
    count: int = 10_500,
    *,
    bad_dates: int = 200,
    missing_fields: int = 200,
    inconsistent_tags: int = 200,
    duplicate_ids: int = 100,
    seed: int | None = None,
) -> GenerationStats:
    """Generate a payload and write it to *path* as JSON."""
    tickets = TicketGenerator(seed).generate(
        count,
        bad_dates=bad_dates,
        missing_fields=missing_fields,
        inconsistent_tags=inconsistent_tags,
        duplicate_ids=duplicate_ids,
    )
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(tickets, indent=2, ensure_ascii=False), encoding="utf-8")
    return GenerationStats(
        total=len(tickets),
        bad_dates=min(bad_dates, count),
        missing_fields=max(0, min(missing_fields, count - bad_dates)),
        inconsistent_tags=max(0, min(inconsistent_tags, count - bad_dates - missing_fields)),
        duplicate_ids=duplicate_ids if count else 0,
    )


__all__ = ["TicketGenerator", "GenerationStats", "write_tickets"]
