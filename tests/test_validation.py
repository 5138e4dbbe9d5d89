"""
tests/test_validation.py — Level & Timezone Validator Tests
============================================================
"""

from __future__ import annotations

import pytest

from cityforge.engine.validation import (
    format_utc_offset,
    parse_levels,
    validate_levels,
    validate_timezone_offset,
)
from cityforge.errors import ValidationError


class TestLevels:
    """Tests for parse_levels() / validate_levels()."""

    def test_parses_spaces_and_commas(self):
        assert parse_levels("145 144, 144") == [145, 144, 144]

    def test_single_level(self):
        assert parse_levels("200") == [200]

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            parse_levels("   ")

    def test_more_than_four_rejected(self):
        with pytest.raises(ValidationError, match="Max 4"):
            parse_levels("5 4 3 2 1")

    @pytest.mark.parametrize("text", ["0", "201", "abc", "12.5", "-3"])
    def test_out_of_range_or_non_integer_rejected(self, text):
        with pytest.raises(ValidationError):
            parse_levels(text)

    def test_increasing_rejected(self):
        with pytest.raises(ValidationError, match="non-increasing"):
            validate_levels([144, 145])

    def test_bool_is_not_a_level(self):
        with pytest.raises(ValidationError):
            validate_levels([True])


class TestTimezoneOffset:
    """Tests for validate_timezone_offset() / format_utc_offset()."""

    @pytest.mark.parametrize("minutes", [-720, -360, 0, 330, 840])
    def test_accepts_range(self, minutes):
        assert validate_timezone_offset(minutes) == minutes

    @pytest.mark.parametrize("minutes", [-721, 841, 1.5, "60", None])
    def test_rejects_out_of_range_or_non_int(self, minutes):
        with pytest.raises(ValidationError):
            validate_timezone_offset(minutes)

    def test_format_labels(self):
        assert format_utc_offset(-360) == "UTC-06:00"
        assert format_utc_offset(330) == "UTC+05:30"
        assert format_utc_offset(0) == "UTC+00:00"
