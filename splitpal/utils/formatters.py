"""
Formatting utilities for SplitPal application.
"""

import calendar
import html
from decimal import Decimal, ROUND_HALF_UP


def format_currency(amount) -> str:
    """Format an amount as dollars with cents, e.g. $1,234.50."""
    value = Decimal(str(amount or 0)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    if value < 0:
        return f"-${-value:,.2f}"
    return f"${value:,.2f}"


def escape_html(text) -> str:
    """Escape user text before it goes into an HTML reply."""
    return html.escape(str(text or ''), quote=True)


def display_name(username: str = None, first_name: str = None) -> str:
    """Name a user the way replies mention them."""
    if username:
        return f"@{username}"
    return first_name or 'Unknown'


def format_percentage(part, whole) -> str:
    """Share of part in whole with one decimal, e.g. 42.5%."""
    whole = Decimal(str(whole or 0))
    if whole == 0:
        return "0.0%"
    percent = (Decimal(str(part or 0)) / whole * 100).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)
    return f"{percent}%"


def month_title(year: int, month: int) -> str:
    """Human title for a month, e.g. March 2024."""
    return f"{calendar.month_name[month]} {year}"
