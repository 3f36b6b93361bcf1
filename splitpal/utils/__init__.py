"""
Utilities package for common functions and helpers.
"""

from .errors import ERROR_MESSAGES, user_message_for
from .formatters import format_currency, escape_html, display_name, format_percentage, month_title
from .helpers import (
    get_current_month, is_ascii_number, command_name, command_target, command_args, parse_quoted_name,
    parse_template_args, parse_budget_args, parse_month_arg, month_date_range, make_shortcut, is_group_chat,
)
from .splits import even_split, rescale_splits, parse_split_mentions, simplify_debts
from .validators import BUDGET_PERIODS, LIMITS, validate_month, parse_amount, clean_description

__all__ = [
    'ERROR_MESSAGES', 'user_message_for',
    'format_currency', 'escape_html', 'display_name', 'format_percentage', 'month_title',
    'get_current_month', 'is_ascii_number', 'command_name', 'command_target', 'command_args', 'parse_quoted_name',
    'parse_template_args', 'parse_budget_args', 'parse_month_arg', 'month_date_range', 'make_shortcut', 'is_group_chat',
    'even_split', 'rescale_splits', 'parse_split_mentions', 'simplify_debts',
    'BUDGET_PERIODS', 'LIMITS', 'validate_month', 'parse_amount', 'clean_description',
]
