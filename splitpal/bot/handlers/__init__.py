"""
Bot handlers package for Telegram bot commands, callbacks and message handling.
"""

from .start import start_command, track_activity
from .settings import help_command, test_command
from .expense import add_command, edit_command, delete_command
from .templates import templates_command, template_shortcut
from .summary import summary_command
from .balance import balance_command, settle_command
from .history import history_command
from .personal import personal_command
from .budget import budget_command
from .callbacks import (
    view_balance_callback, view_history_callback, help_callback,
    add_expense_help_callback, create_template_help_callback, budget_help_callback, close_callback,
    use_template_callback, create_template_callback,
)

__all__ = [
    'start_command',
    'track_activity',
    'help_command',
    'test_command',
    'add_command',
    'edit_command',
    'delete_command',
    'templates_command',
    'template_shortcut',
    'summary_command',
    'balance_command',
    'settle_command',
    'history_command',
    'personal_command',
    'budget_command',
    'view_balance_callback',
    'view_history_callback',
    'help_callback',
    'add_expense_help_callback',
    'create_template_help_callback',
    'budget_help_callback',
    'close_callback',
    'use_template_callback',
    'create_template_callback',
]
