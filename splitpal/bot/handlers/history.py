"""
History handler for SplitPal Telegram bot.
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from ...services.expense_manager import ExpenseManager
from ...utils.errors import user_message_for
from ...utils.formatters import display_name, escape_html, format_currency
from ...utils.helpers import is_group_chat

logger = logging.getLogger(__name__)


def _date(value) -> str:
    return value.strftime('%b %d') if value else ''


def render_group_history(group_id: int) -> str:
    """Recent expenses and settlements of a group, newest first."""
    transactions = ExpenseManager().get_group_history(group_id)

    if not transactions:
        return "📭 No transactions yet.\n\nStart with <code>/add 30 lunch</code>"

    text = "📜 <b>Recent Transactions</b>\n\n"
    for item in transactions:
        payer = escape_html(display_name(item.get('user_username'), item.get('user_first_name')))
        if item['type'] == 'settlement':
            recipient = escape_html(display_name(item.get('to_username'), item.get('to_first_name')))
            text += f"💸 {_date(item['created_at'])} · {payer} paid {recipient} {format_currency(item['amount'])}\n"
        else:
            text += (
                f"💵 {_date(item['created_at'])} · #{item['id']} {escape_html(item['description'])} "
                f"{format_currency(item['amount'])}\n"
                f"   Paid by {payer}, split {item['split_count']} ways"
            )
            if item.get('category'):
                text += f" · {escape_html(item['category'])}"
            text += "\n"
    return text


def render_personal_history(user_id: int) -> str:
    """Recent personal expenses of a user, newest first."""
    expenses = ExpenseManager().get_personal_history(user_id)

    if not expenses:
        return "📭 No personal expenses yet.\n\nTrack one with <code>/add 12.50 lunch</code>"

    text = "📜 <b>Recent Personal Expenses</b>\n\n"
    for expense in expenses:
        text += (
            f"💵 {_date(expense.created_at)} · #{expense.id} {escape_html(expense.description)} "
            f"{format_currency(expense.amount)}"
        )
        if expense.category:
            text += f" · {escape_html(expense.category)}"
        text += "\n"
    return text


async def history_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /history command."""
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat

    try:
        if is_group_chat(chat):
            text = render_group_history(chat.id)
        else:
            text = render_personal_history(user.id)
        await message.reply_text(text, parse_mode='HTML')

    except Exception as e:
        logger.error(f"Error getting history for chat {chat.id}: {e}")
        await message.reply_text(user_message_for(e))
