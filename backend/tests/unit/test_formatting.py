"""
Unit tests for formatting utilities.

Tests cover:
- CSV timestamp formatting and parsing
- Countdown durations
"""

from datetime import datetime

import pytest

from backend.src.utils.formatting import (
    format_duration,
    format_timestamp,
    parse_timestamp,
)


class TestFormatTimestamp:

    def test_formats_datetime(self):
        assert format_timestamp(datetime(2026, 1, 20, 9, 5, 0)) == "2026-01-20 09:05:00"

    def test_none_is_empty(self):
        assert format_timestamp(None) == ""


class TestParseTimestamp:

    @pytest.mark.parametrize("text", [
        "2026-01-20 09:05:00",
        "2026-01-20T09:05:00",
        "2026-01-20T09:05:00Z",
        "2026-01-20T10:05:00+01:00",
        "  2026-01-20 09:05:00  ",
    ])
    def test_accepted_formats(self, text):
        assert parse_timestamp(text) == datetime(2026, 1, 20, 9, 5, 0)

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty_is_none(self, text):
        assert parse_timestamp(text) is None

    def test_invalid_raises(self):
        with pytest.raises(ValueError, match="Invalid timestamp"):
            parse_timestamp("next tuesday")


class TestFormatDuration:

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0m 0s"),
        (5, "0m 5s"),
        (150, "2m 30s"),
        (3600, "1h 0m 0s"),
        (3725, "1h 2m 5s"),
    ])
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected

    def test_negative_clamped_to_zero(self):
        assert format_duration(-10) == "0m 0s"
