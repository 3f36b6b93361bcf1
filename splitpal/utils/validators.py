"""
Validation utilities for SplitPal application.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

LIMITS = {
    'MIN_AMOUNT': Decimal('0.01'),
    'MAX_AMOUNT': Decimal('999999.99'),
    'MAX_DESCRIPTION_LENGTH': 200,
    'MAX_TEMPLATE_NAME_LENGTH': 50,
}

BUDGET_PERIODS = ('daily', 'weekly', 'monthly')

_AMOUNT_PATTERN = re.compile(r'^\d+(\.\d{1,2})?$')


def validate_month(month: int) -> bool:
    """Validate month is between 1-12."""
    return 1 <= month <= 12


def parse_amount(text: str) -> Optional[Decimal]:
    """
    Parse a monetary amount typed by a user.

    Accepts plain positive numbers with at most two decimals ("25", "4.5",
    "4,50"). Returns None for anything else, including amounts outside LIMITS.
    """
    if text is None:
        return None
    cleaned = text.strip().lstrip('$').replace(',', '.')
    if not _AMOUNT_PATTERN.match(cleaned):
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if amount < LIMITS['MIN_AMOUNT'] or amount > LIMITS['MAX_AMOUNT']:
        return None
    return amount


def clean_description(text: str) -> str:
    """Collapse whitespace and cap the length of a description."""
    cleaned = ' '.join((text or '').split())
    return cleaned[:LIMITS['MAX_DESCRIPTION_LENGTH']]
