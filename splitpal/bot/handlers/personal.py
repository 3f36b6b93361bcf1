"""
Personal overview handler for SplitPal Telegram bot.
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from ...services.report_generator import ReportGenerator
from ...utils.errors import ERROR_MESSAGES, user_message_for
from ...utils.helpers import is_group_chat

logger = logging.getLogger(__name__)


async def personal_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /personal command: balances and spending across all groups."""
    message = update.effective_message
    user = update.effective_user

    if is_group_chat(update.effective_chat):
        await message.reply_text(ERROR_MESSAGES['PRIVATE_ONLY'])
        return

    try:
        overview = ReportGenerator().personal_overview(user.id)
        await message.reply_text(ReportGenerator.format_personal_overview(overview), parse_mode='HTML')

    except Exception as e:
        logger.error(f"Error getting personal overview for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))
