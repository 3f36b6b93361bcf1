"""
Budget handlers for SplitPal Telegram bot.
Handles /budget and the alerts sent when an expense crosses a budget.
"""

import logging
from decimal import Decimal
from typing import Dict

from telegram import Update
from telegram.ext import ContextTypes

from ...services.budget_manager import BudgetManager
from ...services.categorizer import EXPENSE_CATEGORIES, match_category
from ...services.expense_manager import ExpenseManager
from ...utils.errors import ERROR_MESSAGES, user_message_for
from ...utils.formatters import escape_html, format_currency
from ...utils.helpers import is_group_chat, parse_budget_args
from ..keyboards import budget_keyboard

logger = logging.getLogger(__name__)

BUDGET_HELP = (
    "💡 <b>Budgets</b>\n\n"
    "• <code>/budget</code> - your budgets and what you spent\n"
    "• <code>/budget set food 200 monthly</code>\n"
    "• <code>/budget set \"Bills &amp; Utilities\" 50 weekly</code>\n"
    "• <code>/budget delete food</code>\n\n"
    "Periods: daily, weekly, monthly (default).\n"
    "Your personal expenses and your shares of group expenses both count."
)


def unknown_category_message(name: str) -> str:
    categories = '\n'.join(f"• {escape_html(category)}" for category in EXPENSE_CATEGORIES)
    return f"❌ Unknown category \"{escape_html(name)}\". Choose one of:\n{categories}"


def check_budgets(shares: Dict[int, Decimal], category: str) -> Dict[int, str]:
    """
    Budget alerts raised by a stored expense, keyed by user.

    A failing check is logged and yields no alerts; the expense itself is
    already saved.
    """
    if not category:
        return {}

    alerts = {}
    try:
        manager = BudgetManager()
        for user_id, share in shares.items():
            alert = manager.check_expense(user_id, category, share)
            if alert:
                alerts[user_id] = alert
    except Exception as e:
        logger.error(f"Error checking {category} budgets: {e}")
    return alerts


async def notify_budget_alerts(context: ContextTypes.DEFAULT_TYPE, shares: Dict[int, Decimal], category: str):
    """DM each group member whose share pushed them past a budget threshold."""
    for user_id, alert in check_budgets(shares, category).items():
        try:
            await context.bot.send_message(
                chat_id=user_id,
                text=(
                    f"💰 <b>Budget Alert</b>\n\n{alert}\n\n"
                    "<i>Use /budget in a private chat to manage your budgets</i>"
                ),
                parse_mode='HTML',
            )
        except Exception as e:
            logger.warning(f"Could not send budget alert to user {user_id}: {e}")


async def budget_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /budget command: list, set and delete personal budgets."""
    message = update.effective_message

    if is_group_chat(update.effective_chat):
        await message.reply_text(ERROR_MESSAGES['PRIVATE_ONLY'])
        return

    args = context.args or []
    action = args[0].lower() if args else 'view'

    if action in ('view', 'list'):
        await _show_budgets(update)
    elif action == 'set':
        await _set_budget(update, args[1:])
    elif action in ('delete', 'remove'):
        await _delete_budget(update, args[1:])
    else:
        await message.reply_text(BUDGET_HELP, parse_mode='HTML')


async def _show_budgets(update: Update):
    message = update.effective_message
    user = update.effective_user

    try:
        manager = BudgetManager()
        budgets = manager.list_budgets(user.id)
        if not budgets:
            await message.reply_text(
                f"💰 <b>Your Budgets</b>\n\nNo budgets set yet.\n\n{BUDGET_HELP}",
                parse_mode='HTML'
            )
            return

        await message.reply_text(
            BudgetManager.format_budgets(budgets),
            parse_mode='HTML',
            reply_markup=budget_keyboard(),
        )

    except Exception as e:
        logger.error(f"Error listing budgets for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))


async def _set_budget(update: Update, args):
    message = update.effective_message
    user = update.effective_user

    try:
        parsed = parse_budget_args(args)
    except ValueError as e:
        await message.reply_text(str(e), parse_mode='HTML')
        return

    category = match_category(parsed.category)
    if category is None:
        await message.reply_text(unknown_category_message(parsed.category), parse_mode='HTML')
        return

    try:
        ExpenseManager().track_participant(user.id, user.username, user.first_name)
        budget = BudgetManager().set_budget(user.id, category, parsed.amount, parsed.period)

        await message.reply_text(
            f"✅ <b>Budget Set</b>\n\n"
            f"📂 {escape_html(budget.category)}: {format_currency(budget.amount)} {budget.period}",
            parse_mode='HTML'
        )

    except Exception as e:
        logger.error(f"Error setting {category} budget for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))


async def _delete_budget(update: Update, args):
    message = update.effective_message
    user = update.effective_user

    name = ' '.join(args).strip().strip('"')
    if not name:
        await message.reply_text(BUDGET_HELP, parse_mode='HTML')
        return

    category = match_category(name) or name

    try:
        if BudgetManager().delete_budget(user.id, category):
            await message.reply_text(f"✅ Budget for \"{escape_html(category)}\" has been removed.", parse_mode='HTML')
        else:
            await message.reply_text(f"❌ No budget found for \"{escape_html(category)}\"", parse_mode='HTML')

    except Exception as e:
        logger.error(f"Error deleting {category} budget for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))
