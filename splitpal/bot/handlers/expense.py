"""
Expense handlers for SplitPal Telegram bot.
Handles adding, editing and deleting expenses.
"""

import logging
from decimal import Decimal
from typing import Dict, List

from telegram import Update
from telegram.ext import ContextTypes

from ...services.categorizer import get_categorizer, match_category
from ...services.expense_manager import ExpenseManager
from ...utils.errors import ERROR_MESSAGES, user_message_for
from ...utils.formatters import display_name, escape_html, format_currency
from ...utils.helpers import is_ascii_number, is_group_chat
from ...utils.splits import CENT, even_split, parse_split_mentions
from ...utils.validators import clean_description, parse_amount
from .budget import check_budgets, notify_budget_alerts, unknown_category_message

logger = logging.getLogger(__name__)

ADD_USAGE = (
    "💡 <b>Usage:</b> <code>/add amount description [@mentions]</code>\n\n"
    "Examples:\n"
    "• <code>/add 30 lunch</code>\n"
    "• <code>/add 30 lunch @ann @bob</code>\n"
    "• <code>/add 30 lunch @ann=20 @bob=10</code>\n"
    "• <code>/add 30 lunch paid:@ann</code>"
)


def _is_mention(token: str) -> bool:
    return (token.startswith('@') and len(token) > 1) or token.lower().startswith('paid:@')


async def add_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /add command for group and personal expenses."""
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat
    args = context.args or []

    if not args:
        await message.reply_text(ADD_USAGE, parse_mode='HTML')
        return

    amount = parse_amount(args[0])
    if amount is None:
        await message.reply_text(ERROR_MESSAGES['INVALID_AMOUNT'])
        return

    mention_args = [token for token in args[1:] if _is_mention(token)]
    description = clean_description(' '.join(token for token in args[1:] if not _is_mention(token)))
    if not description:
        await message.reply_text("❌ Please add a description, e.g. <code>/add 30 lunch</code>", parse_mode='HTML')
        return

    category = get_categorizer().suggest(description, amount)

    if not is_group_chat(chat):
        await _add_personal_expense(update, amount, description, category, mention_args)
        return

    try:
        parsed = parse_split_mentions(mention_args, amount)
    except ValueError as e:
        await message.reply_text(f"❌ {escape_html(str(e))}", parse_mode='HTML')
        return

    try:
        expense_manager = ExpenseManager()

        wanted = parsed.mentions + ([parsed.paid_by] if parsed.paid_by else [])
        found, missing = expense_manager.resolve_usernames(chat.id, wanted)
        if missing:
            names = ', '.join(f"@{escape_html(name)}" for name in missing)
            await message.reply_text(
                f"{ERROR_MESSAGES['USER_NOT_IN_GROUP']}\n\nNot found: {names}",
                parse_mode='HTML'
            )
            return

        paid_by = found[parsed.paid_by.lower()] if parsed.paid_by else user.id
        names = {user.id: display_name(user.username, user.first_name)}
        names.update({telegram_id: f"@{username}" for username, telegram_id in found.items()})

        if not parsed.mentions:
            participants = expense_manager.active_member_ids(chat.id)
            if user.id not in participants:
                participants.append(user.id)
            splits = even_split(amount, participants)
        elif not parsed.has_custom_splits:
            participants = [found[name.lower()] for name in parsed.mentions] + [paid_by]
            splits = even_split(amount, participants)
        else:
            splits = _custom_splits(parsed.splits, found, paid_by, amount)

        expense_id = expense_manager.add_expense(
            group_id=chat.id,
            amount=amount,
            description=description,
            paid_by=paid_by,
            created_by=user.id,
            splits=splits,
            category=category,
        )

        response = "✅ <b>Expense Added</b>\n\n"
        response += f"💵 Amount: <b>{format_currency(amount)}</b>\n"
        response += f"📝 Description: {escape_html(description)}\n"
        response += f"👤 Paid by: {escape_html(names.get(paid_by, 'Unknown'))}\n"
        if parsed.mentions:
            split_text = ', '.join(
                f"{escape_html(names.get(member, 'Unknown'))} ({format_currency(share)})"
                for member, share in splits.items()
            )
            response += f"👥 Split: {split_text}\n"
        else:
            response += f"👥 Split evenly between {len(splits)} people\n"
        if category:
            response += f"📂 Category: {escape_html(category)}\n"
        response += f"\n🆔 Expense #{expense_id}"

        await message.reply_text(response, parse_mode='HTML')
        await notify_budget_alerts(context, splits, category)

    except Exception as e:
        logger.error(f"Error adding expense in group {chat.id} for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))


def _custom_splits(parsed: Dict[str, Decimal], found: Dict[str, int], paid_by: int,
                   amount: Decimal) -> Dict[int, Decimal]:
    """Map username splits to ids; whatever is unassigned is the payer's own share."""
    splits: Dict[int, Decimal] = {}
    for username, share in parsed.items():
        member = found[username.lower()]
        splits[member] = splits.get(member, Decimal('0')) + share

    remaining = amount - sum(splits.values(), Decimal('0'))
    if remaining >= CENT:
        splits[paid_by] = splits.get(paid_by, Decimal('0')) + remaining
    return splits


async def _add_personal_expense(update: Update, amount: Decimal, description: str,
                                category: str, mention_args: List[str]):
    message = update.effective_message
    user = update.effective_user

    if mention_args:
        await message.reply_text(
            "⚠️ Splitting and <code>paid:</code> only work in group chats.\n"
            "In this chat, <code>/add amount description</code> tracks a personal expense.",
            parse_mode='HTML'
        )
        return

    try:
        expense_manager = ExpenseManager()
        expense_manager.track_participant(user.id, user.username, user.first_name)
        expense_id = expense_manager.add_expense(
            group_id=None,
            amount=amount,
            description=description,
            paid_by=user.id,
            created_by=user.id,
            category=category,
        )

        response = "✅ <b>Personal Expense Added</b>\n\n"
        response += f"💵 Amount: <b>{format_currency(amount)}</b>\n"
        response += f"📝 Description: {escape_html(description)}\n"
        if category:
            response += f"📂 Category: {escape_html(category)}\n"
        response += f"\n🆔 Expense #{expense_id}"

        alert = check_budgets({user.id: amount}, category).get(user.id)
        if alert:
            response += f"\n\n💰 <b>Budget Alert</b>\n{alert}"

        await message.reply_text(response, parse_mode='HTML')

    except Exception as e:
        logger.error(f"Error adding personal expense for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))


async def delete_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /delete command. Only the creator or a chat admin may delete."""
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat

    if not is_group_chat(chat):
        await message.reply_text(ERROR_MESSAGES['GROUP_ONLY'])
        return

    args = context.args or []
    if not args or not is_ascii_number(args[0].lstrip('#')):
        await message.reply_text(
            "💡 <b>Usage:</b> <code>/delete expense_id</code>\n\n"
            "Find expense ids with /history",
            parse_mode='HTML'
        )
        return

    expense_id = int(args[0].lstrip('#'))

    try:
        expense_manager = ExpenseManager()
        expense = expense_manager.get_expense(expense_id, chat.id)
        if not expense:
            await message.reply_text(f"❌ Expense #{expense_id} not found.")
            return

        if expense['created_by'] != user.id:
            member = await context.bot.get_chat_member(chat.id, user.id)
            if member.status not in ('administrator', 'creator'):
                await message.reply_text("❌ Only the person who added this expense or a group admin can delete it.")
                return

        expense_manager.soft_delete_expense(expense_id)

        await message.reply_text(
            f"🗑 <b>Expense Deleted</b>\n\n"
            f"#{expense_id}: {escape_html(expense['description'])} - {format_currency(expense['amount'])}\n"
            f"Added by {escape_html(display_name(expense.get('username'), expense.get('first_name')))}",
            parse_mode='HTML'
        )
        logger.info(f"User {user.id} deleted expense {expense_id} in group {chat.id}")

    except Exception as e:
        logger.error(f"Error deleting expense {expense_id} in group {chat.id}: {e}")
        await message.reply_text(user_message_for(e))


EDIT_USAGE = (
    "💡 <b>Usage:</b> <code>/edit expense_id field value</code>\n\n"
    "Fields:\n"
    "• <code>/edit 42 amount 35</code>\n"
    "• <code>/edit 42 description Team lunch</code>\n"
    "• <code>/edit 42 category Travel</code>\n\n"
    "Find expense ids with /history"
)

EDIT_FIELDS = ('amount', 'description', 'category')


async def edit_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /edit command.

    Only the creator or the payer may edit. In a group only that group's
    expenses can be edited, in a private chat only personal ones. A new
    amount rescales the splits proportionally.
    """
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat

    args = context.args or []
    if len(args) < 3 or not is_ascii_number(args[0].lstrip('#')) or args[1].lower() not in EDIT_FIELDS:
        await message.reply_text(EDIT_USAGE, parse_mode='HTML')
        return

    expense_id = int(args[0].lstrip('#'))
    field = args[1].lower()
    value = ' '.join(args[2:])

    if field == 'amount':
        new_value = parse_amount(value)
        if new_value is None:
            await message.reply_text(ERROR_MESSAGES['INVALID_AMOUNT'])
            return
    elif field == 'description':
        new_value = clean_description(value)
        if not new_value:
            await message.reply_text("❌ Description cannot be empty.")
            return
    else:
        new_value = match_category(value)
        if new_value is None:
            await message.reply_text(unknown_category_message(value), parse_mode='HTML')
            return

    group_id = chat.id if is_group_chat(chat) else None

    try:
        expense_manager = ExpenseManager()
        expense = expense_manager.get_expense(expense_id, group_id)
        if not expense:
            await message.reply_text(f"❌ Expense #{expense_id} not found.")
            return

        if user.id not in (expense['created_by'], expense['paid_by']):
            await message.reply_text("❌ Only the person who added or paid for this expense can edit it.")
            return

        if field == 'amount':
            expense_manager.update_expense_amount(expense_id, new_value)
            change = (
                f"💵 Amount updated from {format_currency(expense['amount'])} "
                f"to {format_currency(new_value)}"
            )
        elif field == 'description':
            expense_manager.update_expense_details(expense_id, description=new_value)
            change = f"📝 Description updated to \"{escape_html(new_value)}\""
        else:
            expense_manager.update_expense_details(expense_id, category=new_value)
            change = f"📂 Category updated to \"{escape_html(new_value)}\""

        await message.reply_text(f"✏️ <b>Expense #{expense_id} Updated</b>\n\n{change}", parse_mode='HTML')
        logger.info(f"User {user.id} edited the {field} of expense {expense_id}")

    except Exception as e:
        logger.error(f"Error editing expense {expense_id} for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))
