"""
Keyboards and menus for SplitPal Telegram bot.
"""

from typing import Any, Dict, List

from telegram import BotCommand, InlineKeyboardButton, InlineKeyboardMarkup

from ..core.models import Template
from ..utils.formatters import format_currency

# Telegram rejects callback_data longer than 64 bytes
CALLBACK_DATA_LIMIT = 64

BUILTIN_COMMANDS = [
    ("start", "Start using SplitPal"),
    ("help", "Commands and examples"),
    ("add", "Add an expense"),
    ("edit", "Edit an expense"),
    ("delete", "Delete an expense"),
    ("templates", "Saved expense templates"),
    ("summary", "Monthly summary"),
    ("balance", "Who owes whom"),
    ("settle", "Record a payment"),
    ("history", "Recent transactions"),
    ("personal", "Your overview across groups"),
    ("budget", "Personal category budgets"),
    ("test", "Check the system"),
]


def get_main_menu_commands():
    """Get main menu commands for bot."""
    return [BotCommand(command, description) for command, description in BUILTIN_COMMANDS]


def builtin_command_names() -> List[str]:
    return [command for command, _ in BUILTIN_COMMANDS]


def fit_callback_data(data: str) -> str:
    """Trim callback data to Telegram's byte limit without splitting a character."""
    encoded = data.encode('utf-8')
    if len(encoded) <= CALLBACK_DATA_LIMIT:
        return data
    return encoded[:CALLBACK_DATA_LIMIT].decode('utf-8', errors='ignore')


def summary_keyboard():
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton("💰 View Balance", callback_data="view_balance"),
            InlineKeyboardButton("📜 View History", callback_data="view_history"),
        ],
    ])


def templates_keyboard(templates: List[Template]):
    """One 'Use' button per template, then create help and close."""
    rows = [
        [InlineKeyboardButton(
            f"💵 Use {template.name} ({format_currency(template.amount)})",
            callback_data=f"use_template:{template.id}",
        )]
        for template in templates
    ]
    rows.append([InlineKeyboardButton("➕ Create Template", callback_data="create_template_help")])
    rows.append([InlineKeyboardButton("❌ Close", callback_data="close")])
    return InlineKeyboardMarkup(rows)


def suggestions_keyboard(suggestions: List[Dict[str, Any]]):
    """Buttons that turn frequent descriptions into templates."""
    rows = []
    for suggestion in suggestions:
        amount = suggestion['avg_amount']
        description = suggestion['description']
        rows.append([InlineKeyboardButton(
            f"➕ {description} ({format_currency(amount)})",
            callback_data=fit_callback_data(f"create_template:{amount}:{description}"),
        )])
    rows.append([InlineKeyboardButton("❌ Close", callback_data="close")])
    return InlineKeyboardMarkup(rows)


def balance_keyboard():
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton("📜 View History", callback_data="view_history"),
            InlineKeyboardButton("➕ Add Expense", callback_data="add_expense_help"),
        ],
    ])


def help_keyboard():
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton("➕ Add Expense", callback_data="add_expense_help"),
            InlineKeyboardButton("📋 Templates", callback_data="create_template_help"),
        ],
        [InlineKeyboardButton("❌ Close", callback_data="close")],
    ])


def start_keyboard(is_private: bool):
    if is_private:
        return InlineKeyboardMarkup([
            [InlineKeyboardButton("➕ Add Personal Expense", callback_data="add_expense_help")],
            [InlineKeyboardButton("❓ Help", callback_data="help")],
        ])
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton("➕ Add Expense", callback_data="add_expense_help"),
            InlineKeyboardButton("💰 View Balance", callback_data="view_balance"),
        ],
        [InlineKeyboardButton("❓ Help", callback_data="help")],
    ])


def settlement_keyboard():
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("📊 View All Balances", callback_data="view_balance")],
        [InlineKeyboardButton("➕ Add Expense", callback_data="add_expense_help")],
    ])


def budget_keyboard():
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("➕ Set Budget", callback_data="budget_help")],
        [InlineKeyboardButton("❌ Close", callback_data="close")],
    ])
