"""
Start command and participant tracking for SplitPal Telegram bot.
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from ...services.expense_manager import ExpenseManager
from ...utils.errors import user_message_for
from ...utils.formatters import escape_html
from ...utils.helpers import is_group_chat
from ..keyboards import start_keyboard

logger = logging.getLogger(__name__)


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command and register the user (and group)."""
    user = update.effective_user
    chat = update.effective_chat
    in_group = is_group_chat(chat)

    try:
        ExpenseManager().track_participant(
            user.id, user.username, user.first_name,
            group_id=chat.id if in_group else None,
            group_title=chat.title if in_group else None,
        )
    except Exception as e:
        logger.error(f"Error registering user {user.id} on /start: {e}")
        await update.effective_message.reply_text(user_message_for(e))
        return

    name = escape_html(user.first_name or 'there')

    if in_group:
        welcome_message = f"""
👋 <b>SplitPal is ready in {escape_html(chat.title or 'this group')}!</b>

Hi {name}! I keep track of shared expenses and who owes whom.

<b>Quick start:</b>
• <code>/add 30 lunch</code> - split evenly with everyone
• <code>/add 30 lunch @ann @bob</code> - split with specific people
• <code>/balance</code> - see who owes whom
• <code>/settle @ann 15</code> - record a payment

💡 Everyone should send a message here so I can include them in splits.
"""
    else:
        welcome_message = f"""
👋 <b>Welcome to SplitPal, {name}!</b>

In this private chat I track your <b>personal</b> expenses.
Add me to a group to split expenses with friends.

<b>Quick start:</b>
• <code>/add 12.50 lunch</code> - track a personal expense
• <code>/templates</code> - reusable expenses
• <code>/summary</code> - this month's spending
• <code>/personal</code> - your balances across groups
• <code>/budget set food 200</code> - a monthly budget with alerts
"""

    await update.effective_message.reply_text(
        welcome_message,
        parse_mode='HTML',
        reply_markup=start_keyboard(not in_group),
    )


async def track_activity(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Record the sender of every group message as an active member."""
    user = update.effective_user
    chat = update.effective_chat

    if user is None or user.is_bot or not is_group_chat(chat):
        return

    try:
        ExpenseManager().track_participant(
            user.id, user.username, user.first_name,
            group_id=chat.id, group_title=chat.title,
        )
    except Exception as e:
        logger.error(f"Error tracking user {user.id} in group {chat.id}: {e}")
