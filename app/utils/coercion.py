"""
Cell value coercion helpers shared by the spreadsheet import and the manual
project forms.

Spreadsheet cells arrive as ``str``, ``int``, ``float``, ``bool``, ``datetime``
or ``None`` depending on the reader; these helpers turn them into the decimal
strings and ISO dates stored on ``Project``.
"""
import math
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

from dateutil import parser as date_parser

Number = Union[int, float]

# Day zero of spreadsheet serial dates (accounts for the 1900 leap-year bug)
SPREADSHEET_EPOCH = datetime(1899, 12, 30)
# Two defaults differing only in year; a string that lands on different years
# never named one
_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 1, 1))


def is_blank(value: Any) -> bool:
    """Mirror spreadsheet "empty" semantics: None, "", 0 and False are blank."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (int, float)):
        return value == 0
    return False


def to_number(value: Any) -> Optional[Number]:
    """
    Parse a cell as a number.

    Returns None when the value is not numeric. Empty strings parse as 0, and
    unsigned ``0x``/``0o``/``0b`` integer literals are accepted.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else value
    text = str(value).strip()
    if text == "":
        return 0
    if "_" in text:
        return None
    if text[:2].lower() in ("0x", "0o", "0b"):
        try:
            return int(text, 0)
        except ValueError:
            return None
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number):
        return None
    return number


def number_or_zero(value: Any) -> Number:
    """``Number(value) || 0``: anything non-numeric or non-finite becomes 0."""
    number = to_number(value)
    if number is None or not math.isfinite(number):
        return 0
    return number


def format_number(value: Number) -> str:
    """Render integral values without a trailing ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def text_or_none(value: Any) -> Optional[str]:
    if is_blank(value):
        return None
    return str(value).strip() or None


def coerce_date(value: Any) -> Optional[str]:
    """
    Best-effort conversion of a date cell to ``YYYY-MM-DD``.

    Strings that cannot be parsed, or that carry no year, are returned
    unchanged; a missing month or day defaults to 1. Numbers are treated as
    spreadsheet serial dates. Never raises.
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        try:
            first, second = (date_parser.parse(value, default=default) for default in _DEFAULTS)
        except (ValueError, OverflowError):
            return value
        if first.year != second.year:
            return value
        return first.date().isoformat()
    if isinstance(value, (int, float)):
        try:
            return (SPREADSHEET_EPOCH + timedelta(days=value)).date().isoformat()
        except (ValueError, OverflowError):
            return str(value)
    return None
