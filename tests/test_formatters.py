"""
Currency / date formatting and shared helpers.
"""

from datetime import date, datetime

import pytest

from siteledger.utils.formatters import format_currency, format_date
from siteledger.utils.helpers import parse_date, round_half_up, to_number


@pytest.mark.parametrize("amount,expected", [
    (0, "₹0"),
    (None, "₹0"),
    (999, "₹999"),
    (1000, "₹1,000"),
    (100000, "₹1,00,000"),
    (12345678, "₹1,23,45,678"),
    (1234.5, "₹1,235"),
    (-500, "-₹500"),
    ("2500", "₹2,500"),
])
def test_format_currency(amount, expected):
    assert format_currency(amount) == expected


def test_format_date():
    assert format_date(date(2025, 3, 5)) == "05 Mar 2025"
    assert format_date(datetime(2024, 12, 31, 23, 0)) == "31 Dec 2024"
    assert format_date("2024-01-09") == "09 Jan 2024"
    assert format_date(None) == "—"
    assert format_date("not a date") == "—"


def test_parse_date_formats():
    assert parse_date("2024-06-15") == date(2024, 6, 15)
    assert parse_date("15.06.2024") == date(2024, 6, 15)
    assert parse_date("2024-06-15T10:30:00") == date(2024, 6, 15)
    assert parse_date("") is None
    assert parse_date("junk") is None


def test_round_half_up_and_to_number():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(2.4) == 2
    assert to_number(None) == 0
    assert to_number("abc") == 0
    assert to_number(float("nan")) == 0
    assert to_number("12.5") == 12.5
