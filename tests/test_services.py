"""
Tests for the expense and settlement managers.
"""

from datetime import datetime
from decimal import Decimal

from splitpal.core.models import Expense
from splitpal.services.expense_manager import ExpenseManager
from splitpal.services.settlement_manager import SettlementManager


class TestExpenseManager:
    """Test expense storage and participant tracking."""

    def test_group_expense_inserts_splits_in_one_transaction(self, fake_db, sample_user_id, sample_group_id):
        fake_db.cursor_rows = [{'id': 42}]
        manager = ExpenseManager(fake_db)

        expense_id = manager.add_expense(
            group_id=sample_group_id,
            amount=Decimal('30'),
            description='lunch',
            paid_by=sample_user_id,
            created_by=sample_user_id,
            splits={sample_user_id: Decimal('15.00'), 2002: Decimal('15.00')},
            category='Food & Dining',
        )

        assert expense_id == 42
        statements = fake_db.statements('cursor')
        assert len(statements) == 3
        assert statements[0][1] == (
            sample_group_id, Decimal('30'), 'lunch', 'Food & Dining',
            sample_user_id, sample_user_id, False, None,
        )
        assert statements[1][1] == (42, sample_user_id, Decimal('15.00'))
        assert statements[2][1] == (42, 2002, Decimal('15.00'))
        assert fake_db.commits == 1

    def test_personal_expense_has_no_splits(self, fake_db, sample_user_id):
        fake_db.cursor_rows = [{'id': 43}]
        manager = ExpenseManager(fake_db)

        manager.add_expense(None, Decimal('12.50'), 'coffee', sample_user_id, sample_user_id,
                            splits={sample_user_id: Decimal('12.50')})

        statements = fake_db.statements('cursor')
        assert len(statements) == 1
        assert statements[0][1][6] is True

    def test_track_participant_in_group(self, fake_db, sample_user_id, sample_group_id):
        manager = ExpenseManager(fake_db)

        manager.track_participant(sample_user_id, 'alice', 'Alice', sample_group_id, 'Flat 4B')

        queries = [query for query, _ in fake_db.statements('cursor')]
        assert len(queries) == 3
        assert 'INSERT INTO users' in queries[0]
        assert 'INSERT INTO groups' in queries[1]
        assert 'INSERT INTO group_members' in queries[2]

    def test_track_participant_in_private_chat(self, fake_db, sample_user_id):
        ExpenseManager(fake_db).track_participant(sample_user_id, 'alice', 'Alice')
        assert len(fake_db.statements('cursor')) == 1

    def test_resolve_usernames_is_case_insensitive(self, fake_db, sample_group_id):
        fake_db.fetch_all_results = [[{'telegram_id': 2002, 'username': 'bob'}]]
        manager = ExpenseManager(fake_db)

        found, missing = manager.resolve_usernames(sample_group_id, ['@Bob', 'zed'])

        assert found == {'bob': 2002}
        assert missing == ['zed']
        _, params = fake_db.statements('fetch_all')[0]
        assert params == (sample_group_id, ['bob', 'zed'])

    def test_resolve_nothing(self, fake_db, sample_group_id):
        assert ExpenseManager(fake_db).resolve_usernames(sample_group_id, []) == ({}, [])
        assert fake_db.calls == []

    def test_personal_history_returns_expenses(self, fake_db, sample_user_id):
        fake_db.fetch_all_results = [[
            {'id': 1, 'amount': Decimal('5.00'), 'description': 'coffee', 'category': None,
             'paid_by': sample_user_id, 'created_by': sample_user_id, 'is_personal': True,
             'created_at': datetime(2024, 3, 2)},
        ]]

        history = ExpenseManager(fake_db).get_personal_history(sample_user_id)

        assert isinstance(history[0], Expense)
        assert history[0].amount == Decimal('5.00')
        assert history[0].is_personal is True

    def test_soft_delete(self, fake_db):
        fake_db.execute_results = [0]
        assert ExpenseManager(fake_db).soft_delete_expense(99) is False

    def test_personal_expense_lookup_ignores_groups(self, fake_db):
        ExpenseManager(fake_db).get_expense(9, None)

        query, params = fake_db.statements('fetch_one')[0]
        assert 'e.group_id IS NULL' in query
        assert params == (9,)

    def test_amount_change_rescales_splits(self, fake_db, sample_user_id):
        fake_db.cursor_rows = [[
            {'user_id': sample_user_id, 'amount': Decimal('10.00')},
            {'user_id': 2002, 'amount': Decimal('20.00')},
        ]]

        splits = ExpenseManager(fake_db).update_expense_amount(7, Decimal('45'))

        assert splits == {sample_user_id: Decimal('15.00'), 2002: Decimal('30.00')}
        statements = fake_db.statements('cursor')
        assert len(statements) == 4
        assert 'FOR UPDATE' in statements[0][0]
        assert statements[1][1] == (Decimal('45'), 7)
        assert statements[2][1] == (Decimal('15.00'), 7, sample_user_id)
        assert fake_db.commits == 1

    def test_personal_amount_change_has_no_splits(self, fake_db):
        assert ExpenseManager(fake_db).update_expense_amount(9, Decimal('5')) == {}
        assert len(fake_db.statements('cursor')) == 2

    def test_update_details_keeps_unchanged_fields(self, fake_db):
        assert ExpenseManager(fake_db).update_expense_details(7, category='Travel') is True

        query, params = fake_db.statements('execute')[0]
        assert 'COALESCE(%s, description)' in query
        assert params == (None, 'Travel', 7)


class TestSettlementManager:
    """Test balances and settlements."""

    def test_net_balance_parameters(self, fake_db, sample_group_id):
        fake_db.fetch_one_results = [{'net_balance': Decimal('12.50')}]
        manager = SettlementManager(fake_db)

        assert manager.net_balance(sample_group_id, 1, 2) == Decimal('12.50')

        _, params = fake_db.statements('fetch_one')[0]
        assert params == (
            sample_group_id, 1, 2,
            sample_group_id, 2, 1,
            sample_group_id, 2, 1,
            sample_group_id, 1, 2,
        )

    def test_net_balance_without_history(self, fake_db, sample_group_id):
        fake_db.fetch_one_results = [{'net_balance': None}]
        assert SettlementManager(fake_db).net_balance(sample_group_id, 1, 2) == Decimal('0')

    def test_record_settlement(self, fake_db, sample_group_id):
        fake_db.execute_results = [{'id': 5}]
        manager = SettlementManager(fake_db)

        assert manager.record_settlement(sample_group_id, 2, 1, Decimal('10'), 2) == 5

        query, params = fake_db.statements('execute')[0]
        assert 'INSERT INTO settlements' in query
        assert params == (sample_group_id, 2, 1, Decimal('10'), 2)

    def test_member_balances(self, fake_db, sample_group_id):
        fake_db.fetch_all_results = [[
            {'user1': 1, 'user2': 2, 'net_amount': Decimal('20')},
            {'user1': 1, 'user2': 3, 'net_amount': Decimal('-5')},
        ]]

        positions = SettlementManager(fake_db).member_balances(sample_group_id)

        assert positions == {1: Decimal('15'), 2: Decimal('-20'), 3: Decimal('5')}
        _, params = fake_db.statements('fetch_all')[0]
        assert params == (sample_group_id, sample_group_id)
