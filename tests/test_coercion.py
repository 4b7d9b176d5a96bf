from datetime import date, datetime

import pytest

from app.utils.coercion import coerce_date, format_number, is_blank, number_or_zero, to_number


class TestNumbers:
    @pytest.mark.parametrize("value,expected", [
        ("100", 100.0),
        (" 42 ", 42.0),
        (7, 7),
        (2.5, 2.5),
        ("", 0),
        (None, 0),
        ("0x10", 16),
        ("0b101", 5),
        ("0o17", 15),
    ])
    def test_to_number(self, value, expected):
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", ["abc", "1_000", "12 port", "0xZZ", "-0x10"])
    def test_to_number_rejects_text(self, value):
        assert to_number(value) is None

    def test_number_or_zero(self):
        assert number_or_zero("abc") == 0
        assert number_or_zero("inf") == 0
        assert number_or_zero("12") == 12

    def test_format_number_drops_integral_fraction(self):
        assert format_number(300000000.0) == "300000000"
        assert format_number(12.5) == "12.5"
        assert format_number(3) == "3"

    def test_blank_values(self):
        assert is_blank(None)
        assert is_blank("")
        assert is_blank(0)
        assert not is_blank(" ")
        assert not is_blank("x")


class TestCoerceDate:
    def test_datetime_and_date(self):
        assert coerce_date(datetime(2026, 1, 15, 10, 30)) == "2026-01-15"
        assert coerce_date(date(2026, 3, 1)) == "2026-03-01"

    def test_parseable_string(self):
        assert coerce_date("2026-01-15") == "2026-01-15"
        assert coerce_date("15 January 2026") == "2026-01-15"

    def test_unparseable_string_passes_through(self):
        assert coerce_date("minggu depan") == "minggu depan"

    @pytest.mark.parametrize("value", ["Mon", "12", "March 5"])
    def test_string_without_year_passes_through(self, value):
        assert coerce_date(value) == value

    def test_missing_day_defaults_to_first(self):
        assert coerce_date("January 2026") == "2026-01-01"

    def test_serial_number(self):
        # 45672 days after 1899-12-30
        assert coerce_date(45672) == "2025-01-15"

    @pytest.mark.parametrize("value", [None, "", 0, False, True, ["2026-01-01"]])
    def test_blank_and_unsupported_types(self, value):
        assert coerce_date(value) is None
