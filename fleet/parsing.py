"""Parsing of loosely-typed spreadsheet cells into dates and kilometers."""

import math
import re
from datetime import date, datetime, timedelta
from enum import Flag
from typing import Any, Union

from dateutil import parser as date_parser

from .errors import InvalidDateFormat, InvalidKilometerValue


class DateEncoding(Flag):
    """Date encodings a spreadsheet cell may use."""

    SERIAL = 1  # spreadsheet day count
    TEXT_MONTH = 2  # 15-Jan-24, 15-Jan-2024
    FREE_FORM = 4  # anything dateutil understands
    ALL = 7


# Day 25569 is 1970-01-01.
SPREADSHEET_EPOCH = datetime(1899, 12, 30)

MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_TEXT_MONTH_RE = re.compile(r"^(\d{1,2})-([A-Za-z]{3})-(\d{2}|\d{4})$")
_SERIAL_RE = re.compile(r"^\d+(\.\d+)?$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}(?:[T ]\S+)?$")
_NON_NUMERIC_RE = re.compile(r"[^0-9.]")


def serial_to_date(days: float) -> date:
    """Convert a spreadsheet day count to a calendar date."""
    if not math.isfinite(days) or days <= 0:
        raise InvalidDateFormat(days)
    try:
        return (SPREADSHEET_EPOCH + timedelta(seconds=round(days * 86400))).date()
    except OverflowError:
        raise InvalidDateFormat(days) from None


def text_month_to_date(raw: str) -> date:
    """Parse 'DD-MMM-YY' or 'DD-MMM-YYYY' with English month abbreviations."""
    match = _TEXT_MONTH_RE.match(raw)
    if not match:
        raise InvalidDateFormat(raw)
    day, month_name, year = match.groups()
    day = int(day)
    month = MONTHS.get(month_name.lower())
    if month is None or not 1 <= day <= 31:
        raise InvalidDateFormat(raw)
    year = int(year)
    if year < 100:
        year += 2000
    try:
        return date(year, month, day)
    except ValueError:
        # e.g. 31-Feb-24
        raise InvalidDateFormat(raw) from None


def parse_date(
    raw: Any,
    encodings: DateEncoding = DateEncoding.ALL,
    dayfirst: bool = True,
) -> str:
    """
    Parse a date cell into an ISO date string (YYYY-MM-DD).

    Accepts date/datetime values as-is, spreadsheet serial day counts
    (numbers or all-digit strings), DD-MMM-YY(YY) text, ISO YYYY-MM-DD
    and, last, free-form strings via dateutil (dayfirst applies here only).

    Raises InvalidDateFormat carrying the raw value.
    """
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    if isinstance(raw, bool) or raw is None:
        raise InvalidDateFormat(raw)

    if isinstance(raw, (int, float)):
        if DateEncoding.SERIAL not in encodings:
            raise InvalidDateFormat(raw)
        return serial_to_date(float(raw)).isoformat()

    if not isinstance(raw, str):
        raise InvalidDateFormat(raw)

    text = raw.strip()
    if not text:
        raise InvalidDateFormat(raw)

    if _SERIAL_RE.match(text) and DateEncoding.SERIAL in encodings:
        try:
            return serial_to_date(float(text)).isoformat()
        except InvalidDateFormat:
            raise InvalidDateFormat(raw) from None

    if _TEXT_MONTH_RE.match(text) and DateEncoding.TEXT_MONTH in encodings:
        try:
            return text_month_to_date(text).isoformat()
        except InvalidDateFormat:
            raise InvalidDateFormat(raw) from None

    if _ISO_DATE_RE.match(text) and DateEncoding.FREE_FORM in encodings:
        # dateutil applies dayfirst even after a leading year
        try:
            return date_parser.isoparse(text).date().isoformat()
        except (ValueError, OverflowError):
            raise InvalidDateFormat(raw) from None

    if DateEncoding.FREE_FORM in encodings:
        try:
            return date_parser.parse(text, dayfirst=dayfirst).date().isoformat()
        except (ValueError, OverflowError):
            raise InvalidDateFormat(raw) from None

    raise InvalidDateFormat(raw)


def parse_kilometer(raw: Any) -> Union[int, float]:
    """
    Coerce a kilometer cell into a non-negative number.

    Strings are stripped of everything except digits and the decimal point,
    so '5,000 km' parses as 5000.

    Raises InvalidKilometerValue carrying the raw value.
    """
    if isinstance(raw, bool) or raw is None:
        raise InvalidKilometerValue(raw)

    if isinstance(raw, (int, float)):
        value = raw
    elif isinstance(raw, str):
        cleaned = _NON_NUMERIC_RE.sub("", raw)
        try:
            value = float(cleaned)
        except ValueError:
            raise InvalidKilometerValue(raw) from None
    else:
        raise InvalidKilometerValue(raw)

    if not math.isfinite(value) or value < 0:
        raise InvalidKilometerValue(raw)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
