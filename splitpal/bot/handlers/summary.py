"""
Summary handler for SplitPal Telegram bot.
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from ...services.report_generator import ReportGenerator
from ...utils.errors import user_message_for
from ...utils.helpers import is_group_chat, parse_month_arg
from ..keyboards import summary_keyboard

logger = logging.getLogger(__name__)


async def summary_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /summary [month] for a group or for personal expenses."""
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat
    args = context.args or []

    year, month = parse_month_arg(' '.join(args) if args else None)

    try:
        report_generator = ReportGenerator()

        if is_group_chat(chat):
            summary = report_generator.monthly_group_summary(chat.id, year, month)
            await message.reply_text(
                ReportGenerator.format_group_summary(summary, chat.title),
                parse_mode='HTML',
                reply_markup=summary_keyboard(),
            )
        else:
            summary = report_generator.monthly_personal_summary(user.id, year, month)
            await message.reply_text(
                ReportGenerator.format_personal_monthly(summary),
                parse_mode='HTML',
            )

    except Exception as e:
        logger.error(f"Error generating summary {year}-{month:02d} for chat {chat.id}: {e}")
        await message.reply_text(user_message_for(e))
