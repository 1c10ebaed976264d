#!/usr/bin/env python3
"""Tests for date and kilometer cell parsing."""
from datetime import date, datetime

import pytest

from fleet import (
    DateEncoding,
    InvalidDateFormat,
    InvalidKilometerValue,
    parse_date,
    parse_kilometer,
)


class TestParseDate:
    """Tests for parse_date."""

    def test_text_month_two_digit_year(self):
        assert parse_date("15-Jan-24") == "2024-01-15"

    def test_text_month_four_digit_year(self):
        assert parse_date("15-Jan-2024") == "2024-01-15"

    def test_text_month_case_insensitive(self):
        assert parse_date("01-DEC-23") == "2023-12-01"
        assert parse_date("7-sep-23") == "2023-09-07"

    def test_serial_day_count(self):
        assert parse_date(45000) == "2023-03-15"
        assert parse_date(25569) == "1970-01-01"

    def test_serial_with_time_fraction(self):
        """Time of day is dropped."""
        assert parse_date(45000.75) == "2023-03-15"

    def test_serial_as_string(self):
        assert parse_date("45000") == "2023-03-15"

    def test_free_form(self):
        assert parse_date("2024-01-15") == "2024-01-15"
        assert parse_date("January 15, 2024") == "2024-01-15"

    def test_iso_date_not_day_first(self):
        """Year-first dates keep their month even when the day is 12 or less."""
        assert parse_date("2024-01-05") == "2024-01-05"
        assert parse_date("2024-03-04T10:30") == "2024-03-04"
        assert parse_date("2024-12-01", dayfirst=False) == "2024-12-01"

    def test_invalid_iso_date(self):
        with pytest.raises(InvalidDateFormat):
            parse_date("2024-02-30")

    def test_free_form_day_first(self):
        assert parse_date("03/02/2024") == "2024-02-03"

    def test_free_form_month_first(self):
        assert parse_date("03/02/2024", dayfirst=False) == "2024-03-02"

    def test_date_and_datetime_values(self):
        assert parse_date(date(2024, 5, 1)) == "2024-05-01"
        assert parse_date(datetime(2024, 5, 1, 13, 45)) == "2024-05-01"

    def test_strips_whitespace(self):
        assert parse_date("  15-Jan-24 ") == "2024-01-15"

    @pytest.mark.parametrize(
        "raw",
        [
            "32-Foo-24",
            "32-Jan-24",
            "00-Jan-24",
            "15-Foo-24",
            "31-Feb-24",
            "unknown",
            "",
            "   ",
            None,
            True,
            0,
            -5,
            float("nan"),
            1e12,
            ["15-Jan-24"],
        ],
    )
    def test_invalid(self, raw):
        with pytest.raises(InvalidDateFormat):
            parse_date(raw)

    def test_error_carries_raw_value(self):
        with pytest.raises(InvalidDateFormat) as exc_info:
            parse_date("32-Foo-24")
        assert exc_info.value.raw_value == "32-Foo-24"
        assert "32-Foo-24" in str(exc_info.value)

    def test_leap_day(self):
        assert parse_date("29-Feb-24") == "2024-02-29"
        with pytest.raises(InvalidDateFormat):
            parse_date("29-Feb-23")


class TestParseDateEncodings:
    """Tests for restricting accepted date encodings."""

    def test_serial_disabled(self):
        with pytest.raises(InvalidDateFormat):
            parse_date(45000, DateEncoding.TEXT_MONTH | DateEncoding.FREE_FORM)

    def test_text_month_disabled_falls_back_to_free_form(self):
        assert parse_date("15-Jan-24", DateEncoding.FREE_FORM) == "2024-01-15"

    def test_serial_only(self):
        assert parse_date(45000, DateEncoding.SERIAL) == "2023-03-15"
        with pytest.raises(InvalidDateFormat):
            parse_date("15-Jan-24", DateEncoding.SERIAL)


class TestParseKilometer:
    """Tests for parse_kilometer."""

    def test_numbers(self):
        assert parse_kilometer(5000) == 5000
        assert parse_kilometer(0) == 0
        assert parse_kilometer(5000.0) == 5000
        assert isinstance(parse_kilometer(5000.0), int)
        assert parse_kilometer(1234.5) == 1234.5

    def test_thousands_separator(self):
        assert parse_kilometer("5,000") == 5000

    def test_units_and_whitespace(self):
        assert parse_kilometer(" 12 500 km ") == 12500
        assert parse_kilometer("7500KM") == 7500

    def test_decimal_string(self):
        assert parse_kilometer("1234.5") == 1234.5

    @pytest.mark.parametrize(
        "raw", [None, "", "abc", "1.2.3", ".", True, -10, float("inf"), float("nan"), []]
    )
    def test_invalid(self, raw):
        with pytest.raises(InvalidKilometerValue):
            parse_kilometer(raw)

    def test_error_carries_raw_value(self):
        with pytest.raises(InvalidKilometerValue) as exc_info:
            parse_kilometer("n/a")
        assert exc_info.value.raw_value == "n/a"
