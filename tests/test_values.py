"""
tests/test_values.py — Magnitude Codec Tests
=============================================
"""

from __future__ import annotations

import pytest

from cityforge.engine.values import format_value, parse_value
from cityforge.errors import FormatError, ValidationError


class TestParseValue:
    """Tests for parse_value()."""

    @pytest.mark.parametrize("raw", [None, "", "   ", "n/a", "N/A"])
    def test_empty_inputs_are_zero(self, raw):
        assert parse_value(raw) == 0

    def test_plain_integer(self):
        assert parse_value("120") == 120

    def test_thousands_separators_and_whitespace_ignored(self):
        assert parse_value("120,000") == 120_000
        assert parse_value(" 5 M ") == 5_000_000

    def test_suffixes(self):
        assert parse_value("1K") == 1_000
        assert parse_value("120M") == 120_000_000
        assert parse_value("10G") == 10_000_000_000
        assert parse_value("3T") == 3_000_000_000_000
        assert parse_value("1P") == 10**15

    def test_suffix_is_case_insensitive(self):
        assert parse_value("2.5t") == 2_500_000_000_000

    def test_rounds_half_up(self):
        assert parse_value("1.5") == 2
        assert parse_value("2.5") == 3
        assert parse_value("1.2345K") == 1_235
        assert parse_value("1.4") == 1

    @pytest.mark.parametrize("raw", ["abc", "5X", "-5", "1..2", "K", "5GG"])
    def test_malformed_raises_format_error(self, raw):
        with pytest.raises(FormatError) as exc_info:
            parse_value(raw)
        assert raw in str(exc_info.value)

    def test_format_error_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            parse_value("nope")


class TestFormatValue:
    """Tests for format_value()."""

    @pytest.mark.parametrize("num", [0, -5, float("nan"), float("inf")])
    def test_non_positive_or_non_finite_is_zero(self, num):
        assert format_value(num) == "0"

    def test_below_thousand_is_truncated_integer(self):
        assert format_value(999) == "999"
        assert format_value(12.9) == "12"

    def test_two_decimals_below_ten_units(self):
        assert format_value(1_050) == "1.05K"

    def test_one_decimal_below_hundred_units(self):
        assert format_value(12_345_678) == "12.3M"

    def test_no_decimals_at_hundred_units(self):
        assert format_value(123_456_789) == "123M"

    def test_trailing_zeros_trimmed(self):
        assert format_value(1_000) == "1K"
        assert format_value(1_100) == "1.1K"
        assert format_value(10_000_000_000) == "10G"

    def test_picks_largest_unit(self):
        assert format_value(2 * 10**15) == "2P"
        assert format_value(999_000) == "999K"

    def test_rounding_up_carries_into_next_unit(self):
        assert format_value(999_999) == "1M"
        assert format_value(999_499) == "999K"
        assert format_value(999_999_999) == "1G"

    def test_common_values_read_back(self):
        for text in ("10G", "120M", "5T", "1.5K"):
            assert format_value(parse_value(text)) == text
