"""Tests for ticketdesk.core.filters: filter merging and sort keys."""

import pytest

from ticketdesk.core.filters import (
    DEFAULT_COLUMNS,
    DEFAULT_SORT,
    INITIAL_FILTERS,
    DateRange,
    SortDirection,
    SortKey,
    TicketFilters,
)
from ticketdesk.core.models import TicketStatus


class TestSortKey:
    def test_parse_column_only(self):
        assert SortKey.parse("title") == SortKey("title", SortDirection.ASC)

    def test_parse_with_direction(self):
        assert SortKey.parse("priority:DESC") == SortKey("priority", SortDirection.DESC)

    def test_parse_bad_direction(self):
        with pytest.raises(ValueError):
            SortKey.parse("priority:sideways")

    def test_defaults(self):
        assert DEFAULT_SORT == (SortKey("createdAt", SortDirection.DESC),)
        assert DEFAULT_COLUMNS[0] == "id"


class TestTicketFiltersMerged:
    def test_initial_filters_are_empty(self):
        assert INITIAL_FILTERS == TicketFilters()
        assert INITIAL_FILTERS.date_range == DateRange()

    def test_partial_merge_keeps_other_fields(self):
        base = INITIAL_FILTERS.merged(search_text="crash")
        merged = base.merged(priorities=[1, "2"])
        assert merged.search_text == "crash"
        assert merged.priorities == (1, 2)

    def test_statuses_coerced(self):
        merged = INITIAL_FILTERS.merged(statuses=["open", TicketStatus.BLOCKED])
        assert merged.statuses == (TicketStatus.OPEN, TicketStatus.BLOCKED)

    def test_single_values_wrapped(self):
        merged = INITIAL_FILTERS.merged(tags="bug", statuses="closed")
        assert merged.tags == ("bug",)
        assert merged.statuses == (TicketStatus.CLOSED,)

    def test_none_clears(self):
        merged = INITIAL_FILTERS.merged(tags=["bug"], search_text="x").merged(tags=None, search_text=None)
        assert merged == INITIAL_FILTERS

    def test_date_range_mapping_merges_over_current(self):
        base = INITIAL_FILTERS.merged(date_range={"from": "2024-01-01"})
        merged = base.merged(date_range={"to": "2024-12-31"})
        assert merged.date_range == DateRange(from_="2024-01-01", to="2024-12-31")

    def test_date_range_empty_strings_become_none(self):
        merged = INITIAL_FILTERS.merged(date_range={"from": "", "to": ""})
        assert merged.date_range == DateRange()

    def test_invalid_status_raises(self):
        with pytest.raises(ValueError):
            INITIAL_FILTERS.merged(statuses=["done"])

    def test_unknown_field_raises(self):
        with pytest.raises(TypeError):
            INITIAL_FILTERS.merged(colour="red")

    def test_returns_new_instance(self):
        merged = INITIAL_FILTERS.merged(search_text="x")
        assert merged is not INITIAL_FILTERS
        assert INITIAL_FILTERS.search_text == ""
