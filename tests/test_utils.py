"""
Tests for SplitPal utility functions.
"""

from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from splitpal import config
from splitpal.core.database import build_dsn
from splitpal.utils.errors import ERROR_MESSAGES, user_message_for
from splitpal.utils.formatters import format_currency, escape_html, display_name, format_percentage, month_title
from splitpal.utils.validators import validate_month, parse_amount, clean_description, LIMITS
from splitpal.utils.helpers import (
    get_current_month, is_ascii_number, command_name, command_target, command_args, parse_quoted_name,
    parse_template_args, parse_budget_args, parse_month_arg, month_date_range, make_shortcut, is_group_chat,
)


class TestFormatters:
    """Test formatting functions."""

    def test_format_currency(self):
        """Test currency formatting."""
        assert format_currency(15) == "$15.00"
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(Decimal('1000000')) == "$1,000,000.00"
        assert format_currency(0) == "$0.00"
        assert format_currency(None) == "$0.00"

    def test_format_currency_rounds_half_up(self):
        """Test currency rounding to cents."""
        assert format_currency(Decimal('0.005')) == "$0.01"
        assert format_currency(Decimal('2.344')) == "$2.34"

    def test_format_currency_negative(self):
        assert format_currency(-5) == "-$5.00"

    def test_escape_html(self):
        assert escape_html('<b>Tom & Jerry</b>') == '&lt;b&gt;Tom &amp; Jerry&lt;/b&gt;'
        assert escape_html(None) == ''

    def test_display_name(self):
        assert display_name('alice', 'Alice') == '@alice'
        assert display_name(None, 'Alice') == 'Alice'
        assert display_name(None, None) == 'Unknown'

    def test_format_percentage(self):
        assert format_percentage(Decimal('90'), Decimal('120')) == "75.0%"
        assert format_percentage(1, 3) == "33.3%"
        assert format_percentage(5, 0) == "0.0%"

    def test_month_title(self):
        assert month_title(2024, 3) == "March 2024"


class TestValidators:
    """Test validation functions."""

    def test_validate_month_valid(self):
        """Test valid month validation."""
        for month in range(1, 13):
            assert validate_month(month) is True

    def test_validate_month_invalid(self):
        """Test invalid month validation."""
        for month in [0, 13, 15, -1, 100]:
            assert validate_month(month) is False

    def test_parse_amount_valid(self):
        assert parse_amount('25') == Decimal('25')
        assert parse_amount('12.50') == Decimal('12.50')
        assert parse_amount('4,5') == Decimal('4.5')
        assert parse_amount('$10') == Decimal('10')
        assert parse_amount('999999.99') == LIMITS['MAX_AMOUNT']

    def test_parse_amount_invalid(self):
        for text in ['0', '-5', '1.234', 'abc', '', '1000000', '1e3', None]:
            assert parse_amount(text) is None

    def test_clean_description(self):
        assert clean_description('  team   lunch  ') == 'team lunch'
        assert len(clean_description('x' * 300)) == LIMITS['MAX_DESCRIPTION_LENGTH']
        assert clean_description(None) == ''


class TestHelpers:
    """Test helper functions."""

    def test_get_current_month(self):
        """Test getting current month."""
        year, month = get_current_month()
        assert isinstance(year, int)
        assert 1 <= month <= 12

    def test_command_name(self):
        assert command_name('/Coffee@SplitPalBot 2') == 'coffee'
        assert command_name('/lunch') == 'lunch'
        assert command_name('hello') == ''
        assert command_name('') == ''

    def test_command_target(self):
        assert command_target('/coffee@SplitPalBot 2') == 'splitpalbot'
        assert command_target('/coffee 2') == ''
        assert command_target('hello@bot') == ''

    def test_is_ascii_number(self):
        assert is_ascii_number('42')
        assert not is_ascii_number('²')
        assert not is_ascii_number('')

    def test_command_args(self):
        assert command_args('/add 30 lunch') == ['30', 'lunch']
        assert command_args('/balance') == []

    def test_parse_quoted_name_normalises_smart_quotes(self):
        assert parse_quoted_name('“Morning Coffee” 5') == ('Morning Coffee', '5')
        assert parse_quoted_name('Coffee 5') == (None, 'Coffee 5')

    def test_make_shortcut(self):
        assert make_shortcut('Morning Coffee!') == 'morningcof'
        assert make_shortcut('Rent') == 'rent'
        assert make_shortcut('☕') == ''

    def test_month_date_range_is_half_open(self):
        assert month_date_range(2024, 3) == (datetime(2024, 3, 1), datetime(2024, 4, 1))
        assert month_date_range(2024, 12) == (datetime(2024, 12, 1), datetime(2025, 1, 1))

    def test_is_group_chat(self):
        assert is_group_chat(SimpleNamespace(type='group')) is True
        assert is_group_chat(SimpleNamespace(type='supergroup')) is True
        assert is_group_chat(SimpleNamespace(type='private')) is False
        assert is_group_chat(None) is False


class TestTemplateArgs:
    """Test parsing of /templates create arguments."""

    def test_description_defaults_to_name(self):
        parsed = parse_template_args(['"Coffee"', '25'])
        assert parsed.name == 'Coffee'
        assert parsed.amount == Decimal('25')
        assert parsed.description == 'Coffee'
        assert parsed.mentions == []

    def test_full_arguments(self):
        parsed = parse_template_args(['"Morning', 'Coffee"', '4.50', 'Daily', 'latte', '@bob'])
        assert parsed.name == 'Morning Coffee'
        assert parsed.amount == Decimal('4.50')
        assert parsed.description == 'Daily latte'
        assert parsed.mentions == ['@bob']

    def test_name_must_be_quoted(self):
        with pytest.raises(ValueError) as error:
            parse_template_args(['Coffee', '5'])
        assert str(error.value) == ERROR_MESSAGES['NAME_IN_QUOTES']

    def test_invalid_amount(self):
        with pytest.raises(ValueError) as error:
            parse_template_args(['"Coffee"', 'abc'])
        assert str(error.value) == ERROR_MESSAGES['INVALID_AMOUNT']

    def test_missing_amount(self):
        with pytest.raises(ValueError):
            parse_template_args(['"Coffee"'])

    def test_long_name_is_truncated(self):
        parsed = parse_template_args(['"' + 'x' * 60 + '"', '5'])
        assert len(parsed.name) == LIMITS['MAX_TEMPLATE_NAME_LENGTH']


class TestBudgetArgs:
    """Test /budget set argument parsing."""

    def test_period_defaults_to_monthly(self):
        assert parse_budget_args(['food', '200']) == ('food', Decimal('200'), 'monthly')

    def test_unquoted_multi_word_category(self):
        parsed = parse_budget_args(['Bills', '&', 'Utilities', '50', 'Weekly'])
        assert parsed == ('Bills & Utilities', Decimal('50'), 'weekly')

    def test_quoted_category(self):
        parsed = parse_budget_args(['“Food', '&', 'Dining”', '12.50', 'daily'])
        assert parsed.category == 'Food & Dining'
        assert parsed.period == 'daily'

    def test_invalid_amount(self):
        with pytest.raises(ValueError) as error:
            parse_budget_args(['food', 'lots'])
        assert str(error.value) == ERROR_MESSAGES['INVALID_AMOUNT']

    def test_missing_category(self):
        with pytest.raises(ValueError):
            parse_budget_args(['200'])


class TestMonthArg:
    """Test /summary month argument resolution."""

    TODAY = date(2024, 6, 15)

    def test_default_is_current_month(self):
        assert parse_month_arg(None, self.TODAY) == (2024, 6)

    def test_year_month(self):
        assert parse_month_arg('2023-11', self.TODAY) == (2023, 11)

    def test_month_names(self):
        assert parse_month_arg('march', self.TODAY) == (2024, 3)
        assert parse_month_arg('March', self.TODAY) == (2024, 3)
        assert parse_month_arg('sep', self.TODAY) == (2024, 9)

    def test_month_number(self):
        assert parse_month_arg('3', self.TODAY) == (2024, 3)

    def test_invalid_falls_back_to_current_month(self):
        for arg in ['13', '2024-13', 'foo', '0']:
            assert parse_month_arg(arg, self.TODAY) == (2024, 6)

    def test_unicode_digits_fall_back_to_current_month(self):
        for arg in ['²', '2024-²', '٣']:
            assert parse_month_arg(arg, self.TODAY) == (2024, 6)


class TestErrors:
    """Test store-error mapping."""

    def test_known_pg_code(self):
        error = Exception('duplicate key')
        error.pgcode = '23505'
        assert 'duplicate' in user_message_for(error)

    def test_unknown_error_is_generic(self):
        assert user_message_for(RuntimeError('boom')) == ERROR_MESSAGES['DATABASE_ERROR']


class TestConfig:
    """Test configuration validation."""

    def test_validate_config_ok(self, monkeypatch):
        monkeypatch.setattr(config, 'DATABASE_URL', 'postgresql://u:p@localhost/db')
        monkeypatch.setattr(config, 'TELEGRAM_BOT_TOKEN', 'token')
        monkeypatch.setattr(config, 'LOG_LEVEL', 'INFO')
        assert config.validate_config() is True

    def test_validate_config_lists_every_problem(self, monkeypatch):
        monkeypatch.setattr(config, 'DATABASE_URL', None)
        monkeypatch.setattr(config, 'POSTGRES_USER', None)
        monkeypatch.setattr(config, 'POSTGRES_PASSWORD', None)
        monkeypatch.setattr(config, 'TELEGRAM_BOT_TOKEN', None)
        monkeypatch.setattr(config, 'LOG_LEVEL', 'LOUD')

        with pytest.raises(ValueError) as error:
            config.validate_config()

        message = str(error.value)
        assert 'DATABASE_URL' in message
        assert 'TELEGRAM_BOT_TOKEN' in message
        assert 'LOUD' in message

    def test_dsn_normalizes_legacy_scheme(self):
        assert build_dsn('postgres://u:p@db.example.com/app') == 'postgresql://u:p@db.example.com/app'

    def test_dsn_from_parts(self, monkeypatch):
        monkeypatch.setattr(config, 'DATABASE_URL', None)
        monkeypatch.setattr(config, 'POSTGRES_USER', 'split')
        monkeypatch.setattr(config, 'POSTGRES_PASSWORD', 'secret')
        monkeypatch.setattr(config, 'POSTGRES_HOST', 'db')
        monkeypatch.setattr(config, 'POSTGRES_PORT', '5433')
        monkeypatch.setattr(config, 'POSTGRES_DB', 'splitpal')

        assert build_dsn() == 'postgresql://split:secret@db:5433/splitpal'

    def test_dsn_requires_credentials(self, monkeypatch):
        monkeypatch.setattr(config, 'DATABASE_URL', None)
        monkeypatch.setattr(config, 'POSTGRES_USER', None)

        with pytest.raises(ValueError):
            build_dsn()
