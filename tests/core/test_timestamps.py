"""Tests for ticketdesk.core.timestamps: canonical encoding and parsing."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from ticketdesk.core.timestamps import add_years, now_ms, parse_instant, to_iso8601, utc_now, utc_now_iso


class TestToIso8601:
    def test_canonical_shape(self):
        dt = datetime(2024, 6, 15, 10, 5, 3, 123456, tzinfo=UTC)
        assert to_iso8601(dt) == "2024-06-15T10:05:03.123Z"

    def test_naive_is_utc(self):
        assert to_iso8601(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05.000Z"

    def test_offset_converted_to_utc(self):
        dt = datetime(2024, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_iso8601(dt) == "2024-01-01T00:00:00.000Z"

    def test_lexical_order_matches_time_order(self):
        earlier = to_iso8601(datetime(2024, 9, 9, 23, 59, tzinfo=UTC))
        later = to_iso8601(datetime(2024, 10, 1, 0, 0, tzinfo=UTC))
        assert earlier < later


class TestNow:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None

    def test_utc_now_iso_round_trips(self):
        assert parse_instant(utc_now_iso()) is not None

    def test_now_ms_is_milliseconds(self):
        assert now_ms() > 1_600_000_000_000


class TestParseInstant:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-06-15T10:00:00.000Z", datetime(2024, 6, 15, 10, 0, tzinfo=UTC)),
            ("2024-06-15", datetime(2024, 6, 15, tzinfo=UTC)),
            ("2024-06-15T12:00:00+02:00", datetime(2024, 6, 15, 10, 0, tzinfo=UTC)),
            ("  2024-06-15T10:00:00  ", datetime(2024, 6, 15, 10, 0, tzinfo=UTC)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_instant(value) == expected

    @pytest.mark.parametrize(
        "value",
        ["", "   ", "not-a-date", "2024-13-45", "2024/01/01", "2024-02-30T00:00:00.000Z", None, 42, []],
    )
    def test_invalid(self, value):
        assert parse_instant(value) is None


class TestAddYears:
    def test_plain(self):
        assert add_years(datetime(2024, 5, 1, tzinfo=UTC), 1) == datetime(2025, 5, 1, tzinfo=UTC)

    def test_leap_day_rolls_forward(self):
        assert add_years(datetime(2024, 2, 29, tzinfo=UTC), 1) == datetime(2025, 3, 1, tzinfo=UTC)
