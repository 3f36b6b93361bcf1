"""
Template handlers for SplitPal Telegram bot.
Handles the /templates dispatcher and template shortcut commands.
"""

import logging
from decimal import Decimal
from typing import List

from telegram import Update
from telegram.ext import ContextTypes

from ...core.models import Template
from ...services.categorizer import get_categorizer
from ...services.expense_manager import ExpenseManager
from ...services.template_manager import TemplateManager
from ...utils.errors import ERROR_MESSAGES, user_message_for
from ...utils.formatters import escape_html, format_currency
from ...utils.helpers import (
    command_args, command_name, command_target, is_group_chat, parse_quoted_name, parse_template_args,
)
from ...utils.validators import LIMITS, clean_description, parse_amount
from ..keyboards import builtin_command_names, suggestions_keyboard, templates_keyboard

logger = logging.getLogger(__name__)

TEMPLATE_EXAMPLES = """
📋 <b>Expense Templates</b>

You don't have any templates yet.

Create one:
<code>/templates create "Coffee" 5 Morning coffee</code>
<code>/templates create "Lunch" 30 @ann @bob</code>

Then reuse it with its shortcut: <code>/coffee</code>
"""

CREATE_HELP = """
➕ <b>Create a Template</b>

<code>/templates create "name" amount [description] [@mentions]</code>

Examples:
• <code>/templates create "Coffee" 5</code>
• <code>/templates create "Rent" 1200 Monthly rent @ann</code>

The name must be in quotes. Each template gets a shortcut command
made from its name, e.g. "Morning Coffee" becomes /morningcof
"""


def new_template_manager() -> TemplateManager:
    return TemplateManager(reserved_shortcuts=builtin_command_names())


def _template_line(template: Template) -> str:
    line = f"• <b>{escape_html(template.name)}</b> - {format_currency(template.amount)}"
    if template.description and template.description != template.name:
        line += f" ({escape_html(template.description)})"
    if template.shortcut:
        line += f"\n  Shortcut: /{template.shortcut}"
    if template.usage_count:
        line += f" · used {template.usage_count}x"
    return line + "\n"


async def templates_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /templates command and its create/edit/delete/use subcommands."""
    args = context.args or []
    subcommand = args[0].lower() if args else ''

    if subcommand == 'create':
        await _create_template(update, args[1:])
    elif subcommand == 'edit':
        await _edit_template(update, args[1:])
    elif subcommand == 'delete':
        await _delete_template(update, args[1:])
    elif subcommand == 'use':
        await _use_template_by_name(update, args[1:])
    else:
        await _list_templates(update)


async def _list_templates(update: Update):
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat
    group_id = chat.id if is_group_chat(chat) else None

    try:
        template_manager = new_template_manager()
        templates = template_manager.list_templates(user.id, group_id)

        if not templates:
            suggestions = template_manager.suggest_from_history(user.id, group_id)
            if suggestions:
                text = "📋 <b>Expense Templates</b>\n\n"
                text += "You don't have any templates yet, but you often add these:\n\n"
                for suggestion in suggestions:
                    text += (
                        f"• {escape_html(suggestion['description'])} "
                        f"({suggestion['count']}x, avg {format_currency(suggestion['avg_amount'])})\n"
                    )
                text += "\nTap one to save it as a template."
                await message.reply_text(text, parse_mode='HTML', reply_markup=suggestions_keyboard(suggestions))
            else:
                await message.reply_text(TEMPLATE_EXAMPLES, parse_mode='HTML')
            return

        text = "📋 <b>Your Expense Templates</b>\n\n"
        for template in templates:
            text += _template_line(template)
        text += "\n💡 Tap a button or send a shortcut to add the expense."

        await message.reply_text(text, parse_mode='HTML', reply_markup=templates_keyboard(templates))

    except Exception as e:
        logger.error(f"Error listing templates for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))


async def _create_template(update: Update, args: List[str]):
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat
    in_group = is_group_chat(chat)

    if not args:
        await message.reply_text(CREATE_HELP, parse_mode='HTML')
        return

    try:
        parsed = parse_template_args(args)
    except ValueError as e:
        await message.reply_text(f"{e}\n\n{CREATE_HELP}", parse_mode='HTML')
        return

    if parsed.mentions and not in_group:
        await message.reply_text(ERROR_MESSAGES['GROUP_ONLY'])
        return

    try:
        expense_manager = ExpenseManager()
        expense_manager.track_participant(
            user.id, user.username, user.first_name,
            group_id=chat.id if in_group else None,
            group_title=chat.title if in_group else None,
        )

        participants = None
        if parsed.mentions:
            found, missing = expense_manager.resolve_usernames(chat.id, parsed.mentions)
            if missing:
                names = ', '.join(f"@{escape_html(name)}" for name in missing)
                await message.reply_text(
                    f"{ERROR_MESSAGES['USER_NOT_IN_GROUP']}\n\nNot found: {names}",
                    parse_mode='HTML'
                )
                return
            participants = [user.id] + [found[name.lstrip('@').lower()] for name in parsed.mentions]
            participants = list(dict.fromkeys(participants))

        template = new_template_manager().create_template(
            user_id=user.id,
            group_id=chat.id if in_group else None,
            name=parsed.name,
            amount=parsed.amount,
            description=parsed.description,
            category=get_categorizer().suggest(parsed.description, parsed.amount),
            participants=participants,
        )

        await message.reply_text(_created_message(template), parse_mode='HTML')

    except Exception as e:
        logger.error(f"Error creating template for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))


def _created_message(template: Template) -> str:
    text = "✅ <b>Template Created</b>\n\n"
    text += f"📋 Name: {escape_html(template.name)}\n"
    text += f"💵 Amount: {format_currency(template.amount)}\n"
    text += f"📝 Description: {escape_html(template.description)}\n"
    if template.category:
        text += f"📂 Category: {escape_html(template.category)}\n"
    if template.participants:
        text += f"👥 Split between {len(template.participants)} people\n"
    if template.shortcut:
        text += f"\n⚡ Shortcut: /{template.shortcut}"
    else:
        text += "\nℹ️ No shortcut available for this name. Use /templates to add it."
    return text


async def _edit_template(update: Update, args: List[str]):
    message = update.effective_message
    user = update.effective_user

    name, rest = parse_quoted_name(' '.join(args))
    if not name:
        await message.reply_text(
            f"{ERROR_MESSAGES['NAME_IN_QUOTES']}\n\n"
            "<code>/templates edit \"name\" amount [description]</code>",
            parse_mode='HTML'
        )
        return

    tokens = rest.split()
    amount = parse_amount(tokens[0]) if tokens else None
    if amount is None:
        await message.reply_text(ERROR_MESSAGES['INVALID_AMOUNT'])
        return
    description = clean_description(' '.join(tokens[1:])) or None

    try:
        updated = new_template_manager().update_template(user.id, name, amount, description)
        if not updated:
            await message.reply_text(f"❌ Template \"{escape_html(name)}\" not found.", parse_mode='HTML')
            return

        text = f"✅ Template <b>{escape_html(name)}</b> updated to {format_currency(amount)}"
        if description:
            text += f" ({escape_html(description)})"
        await message.reply_text(text, parse_mode='HTML')

    except Exception as e:
        logger.error(f"Error editing template '{name}' for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))


def _name_from_args(args: List[str]) -> str:
    name, rest = parse_quoted_name(' '.join(args))
    return (name or rest).strip()[:LIMITS['MAX_TEMPLATE_NAME_LENGTH']]


async def _delete_template(update: Update, args: List[str]):
    message = update.effective_message
    user = update.effective_user
    name = _name_from_args(args)

    if not name:
        await message.reply_text("💡 <b>Usage:</b> <code>/templates delete \"name\"</code>", parse_mode='HTML')
        return

    try:
        if new_template_manager().delete_template(user.id, name):
            await message.reply_text(f"🗑 Template <b>{escape_html(name)}</b> deleted.", parse_mode='HTML')
        else:
            await message.reply_text(f"❌ Template \"{escape_html(name)}\" not found.", parse_mode='HTML')

    except Exception as e:
        logger.error(f"Error deleting template '{name}' for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))


async def _use_template_by_name(update: Update, args: List[str]):
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat
    name = _name_from_args(args)

    if not name:
        await message.reply_text("💡 <b>Usage:</b> <code>/templates use \"name\"</code>", parse_mode='HTML')
        return

    try:
        template_manager = new_template_manager()
        template = template_manager.find_by_name(user.id, chat.id if is_group_chat(chat) else None, name)
        if not template:
            await message.reply_text(f"❌ Template \"{escape_html(name)}\" not found.", parse_mode='HTML')
            return

        await replay_template(update, template, template_manager)

    except Exception as e:
        logger.error(f"Error using template '{name}' for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))


async def replay_template(update: Update, template: Template, template_manager: TemplateManager = None):
    """Turn a template into a new expense and confirm it in the chat."""
    user = update.effective_user
    chat = update.effective_chat
    in_group = is_group_chat(chat)

    template_manager = template_manager or new_template_manager()
    used = template_manager.use_template(template, user.id, chat.id if in_group else None)

    text = "⚡ <b>Quick Expense Added</b>\n\n"
    text += f"📋 Template: {escape_html(template.name)}\n"
    text += f"💵 Amount: <b>{format_currency(template.amount)}</b>\n"
    text += f"📝 Description: {escape_html(template.description)}\n"
    if in_group:
        text += f"👥 Split between {len(used.splits)} people\n"
    text += f"\n🆔 Expense #{used.expense_id}"

    await update.effective_message.reply_text(text, parse_mode='HTML')


async def template_shortcut(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Replay a template when a message is one of the user's shortcut commands."""
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat

    shortcut = command_name(message.text if message else '')
    if not shortcut or shortcut in builtin_command_names() or user is None:
        return

    target = command_target(message.text)
    if target and target != (context.bot.username or '').lower():
        return

    try:
        template_manager = new_template_manager()
        template = template_manager.find_by_shortcut(user.id, chat.id if is_group_chat(chat) else None, shortcut)
        if not template:
            return

        override = command_args(message.text)
        if override:
            amount = parse_amount(override[0])
            if amount is None:
                await message.reply_text(ERROR_MESSAGES['INVALID_AMOUNT'])
                return
            template.amount = amount

        await replay_template(update, template, template_manager)

    except Exception as e:
        logger.error(f"Error replaying shortcut /{shortcut} for user {user.id}: {e}")
        await message.reply_text(user_message_for(e))


async def create_template_from_suggestion(update: Update, amount: Decimal, description: str):
    """Save a frequently used description as a template."""
    user = update.effective_user
    chat = update.effective_chat
    in_group = is_group_chat(chat)
    name = description[:LIMITS['MAX_TEMPLATE_NAME_LENGTH']]

    template = new_template_manager().create_template(
        user_id=user.id,
        group_id=chat.id if in_group else None,
        name=name,
        amount=amount,
        description=description,
        category=get_categorizer().suggest(description, amount),
    )

    await update.effective_message.reply_text(_created_message(template), parse_mode='HTML')
