"""
Inline button callbacks for SplitPal Telegram bot.
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from ...utils.errors import ERROR_MESSAGES, user_message_for
from ...utils.helpers import is_group_chat
from ...utils.validators import parse_amount
from .balance import render_group_balance
from .budget import BUDGET_HELP
from .expense import ADD_USAGE
from .history import render_group_history, render_personal_history
from .settings import HELP_MESSAGE
from .templates import CREATE_HELP, create_template_from_suggestion, new_template_manager, replay_template

logger = logging.getLogger(__name__)


async def view_balance_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()

    chat = update.effective_chat
    if not is_group_chat(chat):
        await query.message.reply_text(ERROR_MESSAGES['GROUP_ONLY'])
        return

    try:
        await query.message.reply_text(render_group_balance(chat.id), parse_mode='HTML')
    except Exception as e:
        logger.error(f"Error getting balances for group {chat.id}: {e}")
        await query.message.reply_text(user_message_for(e))


async def view_history_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()

    chat = update.effective_chat
    try:
        if is_group_chat(chat):
            text = render_group_history(chat.id)
        else:
            text = render_personal_history(update.effective_user.id)
        await query.message.reply_text(text, parse_mode='HTML')
    except Exception as e:
        logger.error(f"Error getting history for chat {chat.id}: {e}")
        await query.message.reply_text(user_message_for(e))


async def help_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    await query.message.reply_text(HELP_MESSAGE, parse_mode='HTML')


async def add_expense_help_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    await query.message.reply_text(ADD_USAGE, parse_mode='HTML')


async def create_template_help_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    await query.message.reply_text(CREATE_HELP, parse_mode='HTML')


async def budget_help_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    await query.message.reply_text(BUDGET_HELP, parse_mode='HTML')


async def close_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    await query.message.delete()


async def use_template_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Replay a template from its 'Use' button. Only its owner may press it."""
    query = update.callback_query
    user = update.effective_user

    try:
        template_id = int(query.data.split(':', 1)[1])
    except (IndexError, ValueError):
        await query.answer("❌ Invalid template", show_alert=True)
        return

    try:
        template_manager = new_template_manager()
        template = template_manager.get_template(template_id)
        if not template:
            await query.answer("❌ Template not found", show_alert=True)
            return
        if template.user_id != user.id:
            await query.answer("❌ You can only use your own templates", show_alert=True)
            return

        await query.answer()
        await replay_template(update, template, template_manager)

    except Exception as e:
        logger.error(f"Error using template {template_id} for user {user.id}: {e}")
        await query.message.reply_text(user_message_for(e))


async def create_template_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Save a suggested description as a template: create_template:<amount>:<description>."""
    query = update.callback_query
    user = update.effective_user

    parts = query.data.split(':', 2)
    amount = parse_amount(parts[1]) if len(parts) == 3 else None
    description = parts[2].strip() if len(parts) == 3 else ''
    if amount is None or not description:
        await query.answer("❌ Invalid suggestion", show_alert=True)
        return

    await query.answer()
    try:
        await create_template_from_suggestion(update, amount, description)
    except Exception as e:
        logger.error(f"Error creating template from suggestion for user {user.id}: {e}")
        await query.message.reply_text(user_message_for(e))
