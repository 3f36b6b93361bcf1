"""
Balance handlers for SplitPal Telegram bot.
Handles balance and settle commands.
"""

import logging
from decimal import Decimal

from telegram import Update
from telegram.ext import ContextTypes

from ...services.expense_manager import ExpenseManager
from ...services.report_generator import ReportGenerator
from ...services.settlement_manager import SettlementManager
from ...utils.errors import ERROR_MESSAGES, user_message_for
from ...utils.formatters import display_name, escape_html, format_currency
from ...utils.helpers import is_group_chat
from ...utils.splits import CENT, simplify_debts
from ...utils.validators import parse_amount
from ..keyboards import balance_keyboard, settlement_keyboard

logger = logging.getLogger(__name__)

SETTLE_USAGE = (
    "❌ Invalid format!\n\n"
    "Usage: <code>/settle @username amount</code>\n"
    "Example: <code>/settle @john 25.50</code>\n\n"
    "This records that you paid the mentioned user."
)


def render_group_balance(group_id: int) -> str:
    """Pairwise balances, total unsettled and the simplified payment plan."""
    settlement_manager = SettlementManager()
    rows = settlement_manager.group_balances(group_id)

    if not rows:
        return "✨ <b>All settled up!</b>\n\nNo outstanding balances in this group."

    names = {}
    text = "💰 <b>Current Balances</b>\n\n"
    total_unsettled = Decimal('0')

    for row in rows:
        user1 = display_name(row.get('user1_username'), row.get('user1_first_name'))
        user2 = display_name(row.get('user2_username'), row.get('user2_first_name'))
        names[row['user1']], names[row['user2']] = user1, user2

        amount = Decimal(str(row['net_amount']))
        total_unsettled += abs(amount)
        if amount > 0:
            text += f"• {escape_html(user2)} owes {escape_html(user1)}: <b>{format_currency(amount)}</b>\n"
        else:
            text += f"• {escape_html(user1)} owes {escape_html(user2)}: <b>{format_currency(-amount)}</b>\n"

    text += f"\n💵 Total unsettled: <b>{format_currency(total_unsettled)}</b>\n"

    transfers = simplify_debts(settlement_manager.net_positions(rows))
    if transfers:
        text += "\n🔄 <b>Simplest way to settle:</b>\n"
        for transfer in transfers:
            text += (
                f"• {escape_html(names.get(transfer.from_user, 'Unknown'))} → "
                f"{escape_html(names.get(transfer.to_user, 'Unknown'))}: {format_currency(transfer.amount)}\n"
            )

    text += "\n💡 Use <code>/settle @user amount</code> to record a payment"
    return text


async def balance_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /balance command."""
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat

    try:
        if is_group_chat(chat):
            await message.reply_text(
                render_group_balance(chat.id),
                parse_mode='HTML',
                reply_markup=balance_keyboard(),
            )
        else:
            overview = ReportGenerator().personal_overview(user.id)
            await message.reply_text(ReportGenerator.format_personal_overview(overview), parse_mode='HTML')

    except Exception as e:
        logger.error(f"Error getting balances for chat {chat.id}: {e}")
        await message.reply_text(user_message_for(e))


async def settle_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /settle @user amount: the sender paid the mentioned user."""
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat

    if not is_group_chat(chat):
        await message.reply_text(ERROR_MESSAGES['GROUP_ONLY'])
        return

    args = context.args or []
    if len(args) < 2:
        await message.reply_text(SETTLE_USAGE, parse_mode='HTML')
        return

    mention = args[0]
    if not mention.startswith('@') or len(mention) < 2:
        await message.reply_text("❌ Please mention the user you're settling with (@username)")
        return

    amount = parse_amount(args[1])
    if amount is None:
        await message.reply_text(ERROR_MESSAGES['INVALID_AMOUNT'])
        return

    try:
        found, missing = ExpenseManager().resolve_usernames(chat.id, [mention])
        if missing:
            await message.reply_text(
                f"❌ User {escape_html(mention)} not found in this group.\n\n"
                "Make sure they have sent a message here at least once.",
                parse_mode='HTML'
            )
            return

        to_user = found[mention[1:].lower()]
        if to_user == user.id:
            await message.reply_text("❌ You can't settle with yourself.")
            return

        settlement_manager = SettlementManager()
        # Positive: the sender owes the recipient
        debt = settlement_manager.net_balance(chat.id, to_user, user.id)
        settlement_manager.record_settlement(chat.id, user.id, to_user, amount, user.id)

        payer_name = escape_html(display_name(user.username, user.first_name))
        recipient_name = escape_html(mention)
        remaining = debt - amount

        if abs(remaining) < CENT:
            balance_message = f"✅ All settled up between {payer_name} and {recipient_name}!"
        elif remaining > 0:
            balance_message = f"Remaining: {payer_name} owes {recipient_name} {format_currency(remaining)}"
        else:
            balance_message = f"Remaining: {recipient_name} owes {payer_name} {format_currency(-remaining)}"

        await message.reply_text(
            f"💰 <b>Settlement Recorded</b>\n\n"
            f"{payer_name} paid {recipient_name}: <b>{format_currency(amount)}</b>\n\n"
            f"{balance_message}",
            parse_mode='HTML',
            reply_markup=settlement_keyboard(),
        )

    except Exception as e:
        logger.error(f"Error recording settlement in group {chat.id} by user {user.id}: {e}")
        await message.reply_text(user_message_for(e))
        return

    try:
        await context.bot.send_message(
            chat_id=to_user,
            text=(
                f"💰 <b>Payment Received!</b>\n\n"
                f"{payer_name} paid you <b>{format_currency(amount)}</b>\n"
                f"Group: {escape_html(chat.title or 'your group')}\n\n"
                f"{balance_message}"
            ),
            parse_mode='HTML',
        )
    except Exception as e:
        logger.warning(f"Could not notify user {to_user} about settlement: {e}")
