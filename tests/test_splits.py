"""
Tests for split arithmetic and debt simplification.
"""

from decimal import Decimal

import pytest

from splitpal.utils.splits import even_split, parse_split_mentions, rescale_splits, simplify_debts, Transfer


class TestEvenSplit:
    """Test even splitting of an amount."""

    def test_even_amount(self):
        """30 across three participants is 10.00 each."""
        splits = even_split(Decimal('30'), [1, 2, 3])
        assert splits == {1: Decimal('10.00'), 2: Decimal('10.00'), 3: Decimal('10.00')}

    def test_leftover_cents_go_to_first_participants(self):
        splits = even_split(Decimal('10'), ['a', 'b', 'c'])
        assert splits == {'a': Decimal('3.34'), 'b': Decimal('3.33'), 'c': Decimal('3.33')}
        assert sum(splits.values()) == Decimal('10')

    def test_shares_always_sum_to_amount(self):
        for amount in ['0.01', '0.05', '7.77', '100', '999999.99']:
            splits = even_split(Decimal(amount), list(range(7)))
            assert sum(splits.values()) == Decimal(amount)

    def test_duplicate_participants_counted_once(self):
        splits = even_split(Decimal('20'), [1, 2, 1])
        assert splits == {1: Decimal('10.00'), 2: Decimal('10.00')}

    def test_no_participants(self):
        with pytest.raises(ValueError):
            even_split(Decimal('10'), [])


class TestRescaleSplits:
    """Test rescaling shares to a new total."""

    def test_keeps_proportions(self):
        splits = rescale_splits({'a': Decimal('10.00'), 'b': Decimal('30.00')}, Decimal('20'))
        assert splits == {'a': Decimal('5.00'), 'b': Decimal('15.00')}

    def test_leftover_cents_keep_the_total(self):
        splits = rescale_splits({'a': Decimal('10'), 'b': Decimal('10'), 'c': Decimal('10')}, Decimal('40'))
        assert splits == {'a': Decimal('13.34'), 'b': Decimal('13.33'), 'c': Decimal('13.33')}
        assert sum(splits.values()) == Decimal('40')

    def test_no_splits(self):
        assert rescale_splits({}, Decimal('10')) == {}


class TestParseSplitMentions:
    """Test parsing of /add mention arguments."""

    def test_plain_mentions_split_equally(self):
        parsed = parse_split_mentions(['@ann', '@bob'], Decimal('30'))
        assert parsed.mentions == ['ann', 'bob']
        assert parsed.splits == {'ann': Decimal('15.00'), 'bob': Decimal('15.00')}
        assert parsed.has_custom_splits is False
        assert parsed.paid_by is None

    def test_fixed_amount_and_equal_remainder(self):
        parsed = parse_split_mentions(['@ann=20', '@bob'], Decimal('30'))
        assert parsed.splits == {'ann': Decimal('20.00'), 'bob': Decimal('10.00')}
        assert parsed.has_custom_splits is True

    def test_percentage(self):
        parsed = parse_split_mentions(['@ann=60%', '@bob'], Decimal('30'))
        assert parsed.splits == {'ann': Decimal('18.00'), 'bob': Decimal('12.00')}

    def test_share_weights(self):
        parsed = parse_split_mentions(['@ann=2', '@bob=1'], Decimal('30'))
        assert parsed.splits == {'ann': Decimal('20.00'), 'bob': Decimal('10.00')}

    def test_share_rounding_dust_goes_to_first_holder(self):
        parsed = parse_split_mentions(['@ann=1', '@bob=1', '@cat=1'], Decimal('10'))
        assert parsed.splits['ann'] == Decimal('3.34')
        assert sum(parsed.splits.values()) == Decimal('10')

    def test_paid_by(self):
        parsed = parse_split_mentions(['paid:@carol', '@ann'], Decimal('30'))
        assert parsed.paid_by == 'carol'
        assert parsed.mentions == ['ann']

    def test_non_mentions_are_ignored(self):
        parsed = parse_split_mentions(['lunch', '@'], Decimal('30'))
        assert parsed.mentions == []
        assert parsed.splits == {}

    def test_percentages_over_100(self):
        with pytest.raises(ValueError):
            parse_split_mentions(['@ann=60%', '@bob=50%'], Decimal('30'))

    def test_fixed_amounts_over_total(self):
        with pytest.raises(ValueError):
            parse_split_mentions(['@ann=40', '@bob'], Decimal('30'))

    def test_fixed_and_percentage_over_total(self):
        with pytest.raises(ValueError):
            parse_split_mentions(['@ann=20', '@bob=50%'], Decimal('30'))

    def test_invalid_value(self):
        with pytest.raises(ValueError):
            parse_split_mentions(['@ann=abc'], Decimal('30'))


class TestSimplifyDebts:
    """Test the greedy settlement plan."""

    def test_one_creditor_two_debtors(self):
        transfers = simplify_debts({1: Decimal('30'), 2: Decimal('-20'), 3: Decimal('-10')})
        assert transfers == [
            Transfer(2, 1, Decimal('20.00')),
            Transfer(3, 1, Decimal('10.00')),
        ]

    def test_chain_collapses(self):
        # 3 owes 2 and 2 owes 1 the same amount: 3 pays 1 directly
        transfers = simplify_debts({1: Decimal('15'), 2: Decimal('0'), 3: Decimal('-15')})
        assert transfers == [Transfer(3, 1, Decimal('15.00'))]

    def test_sub_cent_balances_ignored(self):
        assert simplify_debts({1: Decimal('0.004'), 2: Decimal('-0.004')}) == []

    def test_settled_group(self):
        assert simplify_debts({}) == []
