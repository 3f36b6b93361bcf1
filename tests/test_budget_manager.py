"""
Tests for budgets, their spending windows and alerts.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from splitpal.core.models import Budget
from splitpal.services.budget_manager import BudgetManager, period_start, threshold_reached

THURSDAY = datetime(2024, 3, 14, 15, 30)


def budget_row(amount='100', period='monthly'):
    return {'id': 1, 'user_id': 1001, 'category': 'Food & Dining', 'amount': Decimal(amount), 'period': period}


class TestBudgetWindows:
    """Test period starts and alert thresholds."""

    def test_period_start(self):
        assert period_start('daily', THURSDAY) == datetime(2024, 3, 14)
        assert period_start('weekly', THURSDAY) == datetime(2024, 3, 11)
        assert period_start('monthly', THURSDAY) == datetime(2024, 3, 1)

    def test_threshold_reached(self):
        assert threshold_reached(Decimal('74.99'), Decimal('100')) is None
        assert threshold_reached(Decimal('75'), Decimal('100')) == 75
        assert threshold_reached(Decimal('95'), Decimal('100')) == 90
        assert threshold_reached(Decimal('120'), Decimal('100')) == 100
        assert threshold_reached(Decimal('5'), Decimal('0')) is None


class TestBudgetManager:
    """Test budget storage and alerts."""

    def test_set_budget_upserts(self, fake_db, sample_user_id):
        fake_db.cursor_rows = [{'id': 3}]

        budget = BudgetManager(fake_db).set_budget(sample_user_id, 'Food & Dining', Decimal('200'), 'weekly')

        assert budget.id == 3
        assert budget.period == 'weekly'
        query, params = fake_db.statements('cursor')[0]
        assert 'ON CONFLICT (user_id, category)' in query
        assert params == (sample_user_id, 'Food & Dining', Decimal('200'), 'weekly')
        assert fake_db.commits == 1

    def test_set_budget_rejects_unknown_period(self, fake_db, sample_user_id):
        with pytest.raises(ValueError):
            BudgetManager(fake_db).set_budget(sample_user_id, 'Travel', Decimal('50'), 'yearly')
        assert fake_db.calls == []

    def test_delete_missing_budget(self, fake_db, sample_user_id):
        fake_db.execute_results = [0]
        assert BudgetManager(fake_db).delete_budget(sample_user_id, 'Travel') is False

    def test_list_budgets_adds_spending(self, fake_db, sample_user_id):
        fake_db.fetch_all_results = [[budget_row('200')]]
        fake_db.fetch_one_results = [{'spent': Decimal('170')}]

        budgets = BudgetManager(fake_db).list_budgets(sample_user_id, now=THURSDAY)

        assert budgets[0].spent == Decimal('170')
        _, params = fake_db.statements('fetch_one')[0]
        since = datetime(2024, 3, 1)
        assert params == (sample_user_id, 'Food & Dining', since, sample_user_id, 'Food & Dining', since)

    def test_alert_when_expense_crosses_threshold(self, fake_db, sample_user_id):
        fake_db.fetch_one_results = [budget_row(), {'spent': Decimal('80')}]

        alert = BudgetManager(fake_db).check_expense(sample_user_id, 'Food & Dining', Decimal('10'), now=THURSDAY)

        assert '75% of <b>Food &amp; Dining</b> budget used' in alert
        assert '$20.00 remaining for this month' in alert

    def test_no_repeat_alert_inside_same_threshold(self, fake_db, sample_user_id):
        fake_db.fetch_one_results = [budget_row(), {'spent': Decimal('85')}]

        assert BudgetManager(fake_db).check_expense(sample_user_id, 'Food & Dining', Decimal('5')) is None

    def test_exceeded_alert(self, fake_db, sample_user_id):
        fake_db.fetch_one_results = [budget_row(period='weekly'), {'spent': Decimal('120')}]

        alert = BudgetManager(fake_db).check_expense(sample_user_id, 'Food & Dining', Decimal('30'))

        assert "Budget exceeded" in alert
        assert "You've spent $120.00 of your $100.00 weekly budget." in alert

    def test_no_budget_no_alert(self, fake_db, sample_user_id):
        assert BudgetManager(fake_db).check_expense(sample_user_id, 'Travel', Decimal('30')) is None
        assert len(fake_db.calls) == 1

    def test_uncategorised_expense_skips_lookup(self, fake_db, sample_user_id):
        assert BudgetManager(fake_db).check_expense(sample_user_id, None, Decimal('30')) is None
        assert fake_db.calls == []

    def test_format_budgets(self):
        text = BudgetManager.format_budgets([
            Budget(category='Food & Dining', amount=Decimal('100'), spent=Decimal('85')),
            Budget(category='Travel', amount=Decimal('50'), period='weekly', spent=Decimal('60')),
        ])

        assert '🟡 <b>Food &amp; Dining</b>' in text
        assert 'Spent: $85.00 (85.0%)' in text
        assert '🔴 <b>Travel</b>' in text
        assert 'Budget: $50.00 weekly' in text
