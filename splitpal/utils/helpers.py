"""
Helper functions for SplitPal application.
Parsing of free-text command arguments lives here.
"""

import calendar
import re
from datetime import date, datetime
from decimal import Decimal
from typing import List, NamedTuple, Optional, Tuple

from .errors import ERROR_MESSAGES
from .validators import BUDGET_PERIODS, LIMITS, clean_description, parse_amount, validate_month

_QUOTED = re.compile(r'"([^"]+)"')
_SMART_QUOTES = str.maketrans({'“': '"', '”': '"', '„': '"', '«': '"', '»': '"'})

_MONTH_NAMES = {name.lower(): index for index, name in enumerate(calendar.month_name) if name}
_MONTH_ABBRS = {name.lower(): index for index, name in enumerate(calendar.month_abbr) if name}


class TemplateArgs(NamedTuple):
    name: str
    amount: Decimal
    description: str
    mentions: List[str]


class BudgetArgs(NamedTuple):
    category: str
    amount: Decimal
    period: str


def get_current_month() -> tuple:
    """Get current year and month."""
    now = datetime.now()
    return now.year, now.month


def is_ascii_number(text: str) -> bool:
    """True for a non-empty string of ASCII digits 0-9."""
    return bool(text) and text.isascii() and text.isdigit()


def command_name(text: str) -> str:
    """Return the bare command of a message: '/Coffee@SplitPalBot 2' -> 'coffee'."""
    if not text or not text.startswith('/'):
        return ''
    head = text.split(maxsplit=1)[0][1:]
    return head.split('@', 1)[0].lower()


def command_target(text: str) -> str:
    """The @BotName a command is addressed to, lowercased, or '' when it has none."""
    if not text or not text.startswith('/'):
        return ''
    head = text.split(maxsplit=1)[0]
    return head.partition('@')[2].lower()


def command_args(text: str) -> List[str]:
    """Whitespace-separated tokens after the /command."""
    if not text:
        return []
    return text.split()[1:]


def parse_quoted_name(text: str) -> Tuple[Optional[str], str]:
    """
    Pull the first double-quoted span out of text.

    Returns:
        tuple: (name or None, remaining text with the quoted span removed)
    """
    normalized = (text or '').translate(_SMART_QUOTES)
    match = _QUOTED.search(normalized)
    if not match:
        return None, normalized.strip()
    name = match.group(1).strip()
    rest = (normalized[:match.start()] + ' ' + normalized[match.end():]).strip()
    return name or None, rest


def parse_template_args(args: List[str]) -> TemplateArgs:
    """
    Parse the arguments of `/templates create "name" amount [description] [@mentions]`.

    Raises:
        ValueError: with the user-facing message when the name is not quoted
            or the amount is not valid
    """
    name, rest = parse_quoted_name(' '.join(args))
    if not name:
        raise ValueError(ERROR_MESSAGES['NAME_IN_QUOTES'])
    name = name[:LIMITS['MAX_TEMPLATE_NAME_LENGTH']]

    tokens = rest.split()
    amount = parse_amount(tokens[0]) if tokens else None
    if amount is None:
        raise ValueError(ERROR_MESSAGES['INVALID_AMOUNT'])

    mentions = [token for token in tokens[1:] if token.startswith('@') and len(token) > 1]
    words = [token for token in tokens[1:] if not token.startswith('@')]
    description = clean_description(' '.join(words).strip('"'))

    return TemplateArgs(name=name, amount=amount, description=description or name, mentions=mentions)


def parse_budget_args(args: List[str]) -> BudgetArgs:
    """
    Parse the arguments of `/budget set category amount [period]`.

    The category may be quoted. Period defaults to monthly.

    Raises:
        ValueError: with the user-facing message when the amount or the
            category is missing
    """
    name, rest = parse_quoted_name(' '.join(args))
    tokens = rest.split()

    period = 'monthly'
    if tokens and tokens[-1].lower() in BUDGET_PERIODS:
        period = tokens.pop().lower()

    amount = parse_amount(tokens.pop()) if tokens else None
    if amount is None:
        raise ValueError(ERROR_MESSAGES['INVALID_AMOUNT'])

    category = name or ' '.join(tokens)
    if not category:
        raise ValueError("❌ Please name a category, e.g. <code>/budget set food 200 monthly</code>")

    return BudgetArgs(category=category, amount=amount, period=period)


def parse_month_arg(arg: Optional[str], today: date = None) -> Tuple[int, int]:
    """
    Resolve the month a /summary request is about.

    Accepts YYYY-MM, an English month name or abbreviation, or a month
    number in the current year. Anything else means the current month.
    """
    default = (today.year, today.month) if today else get_current_month()
    if not arg:
        return default

    current_year = default[0]
    value = arg.strip().lower()

    if '-' in value:
        year_text, _, month_text = value.partition('-')
        if is_ascii_number(year_text) and is_ascii_number(month_text):
            year, month = int(year_text), int(month_text)
            if 1900 <= year <= 9999 and validate_month(month):
                return year, month
        return default

    if value in _MONTH_NAMES:
        return current_year, _MONTH_NAMES[value]
    if value in _MONTH_ABBRS:
        return current_year, _MONTH_ABBRS[value]

    if is_ascii_number(value) and validate_month(int(value)):
        return current_year, int(value)

    return default


def month_date_range(year: int, month: int) -> Tuple[datetime, datetime]:
    """Half-open [start, end) range covering one calendar month."""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def make_shortcut(name: str) -> str:
    """Derive a slash-command shortcut from a template name."""
    return re.sub(r'[^a-z0-9]', '', (name or '').lower())[:10]


def is_group_chat(chat) -> bool:
    """True for group and supergroup chats."""
    return chat is not None and chat.type in ('group', 'supergroup')
