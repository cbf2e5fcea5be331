"""
Display formatting shared by reports, exports and API payloads.

Currency follows the en-IN convention: rupee symbol, no decimals and
Indian digit grouping (last three digits, then pairs): 12345678 → ₹1,23,45,678.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from siteledger.utils.helpers import parse_date

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

EMPTY_DATE = "—"


def _group_indian(digits: str) -> str:
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_currency(amount) -> str:
    """Format *amount* as rupees. ``None`` → ``₹0``; negatives → ``-₹500``."""
    if amount is None:
        return "₹0"
    rounded = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}₹{_group_indian(str(abs(int(rounded))))}"


def format_date(value) -> str:
    """``DD Mon YYYY`` (e.g. ``05 Mar 2025``); missing or unparseable → ``—``."""
    if not value:
        return EMPTY_DATE
    if not isinstance(value, (date, datetime)):
        value = parse_date(value)
        if value is None:
            return EMPTY_DATE
    return f"{value.day:02d} {_MONTHS[value.month - 1]} {value.year}"
