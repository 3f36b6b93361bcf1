"""
Tests for inline keyboards and the command menu.
"""

from decimal import Decimal

from splitpal.bot.keyboards import (
    CALLBACK_DATA_LIMIT, budget_keyboard, builtin_command_names, fit_callback_data, get_main_menu_commands,
    suggestions_keyboard, templates_keyboard,
)
from splitpal.core.models import Template


def callback_data(markup):
    return [button.callback_data for row in markup.inline_keyboard for button in row]


class TestKeyboards:
    """Test keyboard builders."""

    def test_menu_matches_builtin_commands(self):
        assert [command.command for command in get_main_menu_commands()] == builtin_command_names()

    def test_fit_callback_data(self):
        assert fit_callback_data('view_balance') == 'view_balance'

        data = fit_callback_data('create_template:12.50:' + '☕' * 30)
        assert len(data.encode('utf-8')) <= CALLBACK_DATA_LIMIT
        assert data.startswith('create_template:12.50:☕')

    def test_templates_keyboard(self):
        markup = templates_keyboard([Template(id=5, name='Rent', amount=Decimal('1200'))])

        assert callback_data(markup) == ['use_template:5', 'create_template_help', 'close']

    def test_suggestions_keyboard(self):
        markup = suggestions_keyboard([{'description': 'coffee', 'count': 4, 'avg_amount': Decimal('4.50')}])

        assert callback_data(markup)[0] == 'create_template:4.50:coffee'

    def test_budget_keyboard(self):
        assert callback_data(budget_keyboard()) == ['budget_help', 'close']
