"""Tests for reply utility functions: format_duration, parse_positions and truncate."""

from __future__ import annotations

import pytest

from holo_bot.utils.reply import format_duration, parse_positions, truncate

# =============================================================================
# format_duration
# =============================================================================


class TestFormatDuration:
    def test_none(self):
        assert format_duration(None) == "–"

    def test_zero(self):
        assert format_duration(0) == "0:00"

    def test_seconds_only(self):
        assert format_duration(45) == "0:45"

    def test_minutes_seconds(self):
        assert format_duration(213) == "3:33"

    def test_hours(self):
        assert format_duration(3725) == "1:02:05"

    def test_float_truncated(self):
        assert format_duration(59.9) == "0:59"


# =============================================================================
# parse_positions
# =============================================================================


class TestParsePositions:
    def test_single(self):
        assert parse_positions("3") == (2,)

    def test_comma_and_space_separated(self):
        assert parse_positions("1, 3 5") == (0, 2, 4)

    def test_range(self):
        assert parse_positions("2-4") == (1, 2, 3)

    def test_mixed(self):
        assert parse_positions("1,4-5") == (0, 3, 4)

    def test_duplicates_dropped_in_order(self):
        assert parse_positions("3 1 3 2-3") == (2, 0, 1)

    @pytest.mark.parametrize("value", ["", "   ", "abc", "0", "-2", "5-3", "1,x", "1--2"])
    def test_invalid(self, value):
        assert parse_positions(value) is None


# =============================================================================
# truncate
# =============================================================================


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate("hello") == "hello"

    def test_exact_length_unchanged(self):
        assert truncate("a" * 90) == "a" * 90

    def test_long_text_truncated(self):
        result = truncate("a" * 100)
        assert len(result) == 90
        assert result.endswith("…")

    def test_custom_length(self):
        assert truncate("abcdefgh", 5) == "abcd…"
