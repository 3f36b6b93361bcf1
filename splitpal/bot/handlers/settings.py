"""
Settings and utility handlers for SplitPal Telegram bot.
Handles help and test commands.
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from ...core.database import get_db
from ...services.categorizer import get_categorizer
from ..keyboards import help_keyboard

logger = logging.getLogger(__name__)

HELP_MESSAGE = """
💸 <b>SplitPal - Shared Expense Tracker</b>

<b>Expenses:</b>
• <code>/add 30 lunch</code> - split with everyone in the group
• <code>/add 30 lunch @ann @bob</code> - split with specific people
• <code>/add 30 lunch @ann=20 @bob=10</code> - custom amounts
• <code>/add 30 lunch @ann=60% @bob</code> - percentages
• <code>/add 30 lunch paid:@ann</code> - someone else paid
• <code>/edit 42 amount 35</code> - fix an amount, description or category
• <code>/delete 42</code> - delete expense #42

<b>Templates:</b>
• <code>/templates</code> - list your templates
• <code>/templates create "Coffee" 5 Morning coffee</code>
• <code>/templates edit "Coffee" 6</code>
• <code>/templates delete "Coffee"</code>
• <code>/coffee</code> - shortcut to reuse a template

<b>Balances:</b>
• <code>/balance</code> - who owes whom
• <code>/settle @ann 15</code> - record a payment
• <code>/history</code> - recent transactions

<b>Reports:</b>
• <code>/summary</code> - this month
• <code>/summary march</code> or <code>/summary 2024-03</code>
• <code>/personal</code> - your overview across groups (private chat)

<b>Budgets</b> (private chat):
• <code>/budget</code> - your budgets and spending
• <code>/budget set food 200 monthly</code>
• <code>/budget delete food</code>

In a private chat with me, <code>/add</code> tracks personal expenses.
"""


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /help command."""
    await update.effective_message.reply_text(
        HELP_MESSAGE,
        parse_mode='HTML',
        reply_markup=help_keyboard(),
    )


async def test_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /test command."""
    test_message = "🔧 <b>Testing System...</b>\n\n"

    # Test database
    try:
        db_status = get_db().test_connection()
        if db_status:
            test_message += "✅ Database: OK\n"
        else:
            test_message += "❌ Database: Failed\n"
    except Exception as e:
        logger.error(f"Database check failed: {e}")
        test_message += "❌ Database: Error\n"

    # Category suggestions
    if get_categorizer().model is not None:
        test_message += "✅ AI categories: Enabled\n"
    else:
        test_message += "ℹ️ AI categories: Keyword rules only\n"

    test_message += "\n💸 Bot is ready!"

    await update.effective_message.reply_text(test_message, parse_mode='HTML')
