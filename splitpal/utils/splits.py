"""
Split arithmetic for SplitPal.

All money math is done in Decimal cents so shares always add back up to
the expense amount.
"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Dict, Hashable, List, NamedTuple, Optional, Sequence

CENT = Decimal('0.01')


class ParsedSplits(NamedTuple):
    mentions: List[str]
    splits: Dict[str, Decimal]
    has_custom_splits: bool
    paid_by: Optional[str]


class Transfer(NamedTuple):
    from_user: Hashable
    to_user: Hashable
    amount: Decimal


def _to_cents(amount) -> int:
    return int((Decimal(str(amount)) / CENT).to_integral_value(rounding=ROUND_HALF_UP))


def even_split(amount, participants: Sequence[Hashable]) -> Dict[Hashable, Decimal]:
    """
    Split amount evenly across participants.

    Leftover cents go one each to the first participants, so
    10.00 across three people is 3.34 / 3.33 / 3.33.
    """
    unique = list(dict.fromkeys(participants))
    if not unique:
        raise ValueError("Cannot split an expense across zero participants")

    total_cents = _to_cents(amount)
    base, remainder = divmod(total_cents, len(unique))
    return {
        participant: (Decimal(base + (1 if index < remainder else 0)) * CENT)
        for index, participant in enumerate(unique)
    }


def rescale_splits(splits: Dict[Hashable, Decimal], new_amount) -> Dict[Hashable, Decimal]:
    """
    Scale existing shares to a new total, keeping their proportions.

    Shares are floored to the cent and the leftover cents go to the shares
    that lost the most to rounding, so the result adds up to new_amount.
    """
    if not splits:
        return {}

    old_cents = {member: _to_cents(share) for member, share in splits.items()}
    old_total = sum(old_cents.values())
    if old_total == 0:
        return even_split(new_amount, list(splits))

    new_total = _to_cents(new_amount)
    scaled = {}
    remainders = {}
    for member, cents in old_cents.items():
        scaled[member], remainders[member] = divmod(cents * new_total, old_total)

    leftover = new_total - sum(scaled.values())
    for member in sorted(remainders, key=remainders.get, reverse=True)[:leftover]:
        scaled[member] += 1

    return {member: Decimal(cents) * CENT for member, cents in scaled.items()}


def parse_split_mentions(args: Sequence[str], total) -> ParsedSplits:
    """
    Parse the mention arguments of /add.

    Supported forms:
        @john          equal share of whatever is left
        @john=50       fixed amount
        @john=40%      percentage of the total
        @john=2        share weight (whole numbers that add up to less than the total)
        paid:@john     john paid instead of the sender

    Raises:
        ValueError: when a value is malformed or the splits exceed the total
    """
    total = Decimal(str(total))
    mentions: List[str] = []
    equal: List[str] = []
    percentages: Dict[str, Decimal] = {}
    numeric: Dict[str, Decimal] = {}
    paid_by = None

    for arg in args:
        if arg.lower().startswith('paid:@'):
            paid_by = arg[len('paid:@'):]
            continue
        if not arg.startswith('@') or len(arg) < 2:
            continue

        if '=' not in arg:
            username = arg[1:]
            mentions.append(username)
            equal.append(username)
            continue

        username, _, value_text = arg[1:].partition('=')
        mentions.append(username)
        try:
            if value_text.endswith('%'):
                value = Decimal(value_text[:-1])
                if not 0 < value <= 100:
                    raise ValueError
                percentages[username] = value
            else:
                value = Decimal(value_text)
                if value <= 0:
                    raise ValueError
                numeric[username] = value
        except (ArithmeticError, ValueError):
            raise ValueError(f"Invalid split value for @{username}: {value_text}")

    if sum(percentages.values(), Decimal('0')) > 100:
        raise ValueError("Total percentage cannot exceed 100%")

    share_total = sum(numeric.values(), Decimal('0'))
    as_shares = (
        bool(numeric)
        and not percentages
        and all(value == value.to_integral_value() and value <= total / 2 for value in numeric.values())
        and share_total < total
    )

    splits: Dict[str, Decimal] = {}
    remaining = total

    if numeric and not as_shares:
        if share_total > total:
            raise ValueError("Total of fixed amounts exceeds the expense amount")
        for username, value in numeric.items():
            splits[username] = value.quantize(CENT)
            remaining -= splits[username]

    for username, percent in percentages.items():
        splits[username] = (total * percent / 100).quantize(CENT, rounding=ROUND_HALF_UP)
        remaining -= splits[username]

    if remaining < 0:
        raise ValueError("Splits exceed the expense amount")

    if as_shares:
        pool = remaining
        for username, weight in numeric.items():
            splits[username] = (pool * weight / share_total).quantize(CENT, rounding=ROUND_DOWN)
            remaining -= splits[username]
        # Rounding dust goes to the first share holder when nobody splits equally
        if not equal and remaining > 0:
            first = next(iter(numeric))
            splits[first] += remaining
            remaining = Decimal('0')

    if equal and remaining > 0:
        splits.update(even_split(remaining, equal))

    return ParsedSplits(
        mentions=mentions,
        splits=splits,
        has_custom_splits=bool(numeric or percentages),
        paid_by=paid_by,
    )


def simplify_debts(balances: Dict[Hashable, Decimal]) -> List[Transfer]:
    """
    Turn per-member net positions into a short list of payments.

    Positive balance means the member is owed money. The largest debtor
    pays the largest creditor until one side is settled; sub-cent
    leftovers are ignored.
    """
    creditors = sorted(
        ([user, Decimal(str(amount))] for user, amount in balances.items() if Decimal(str(amount)) >= CENT),
        key=lambda item: item[1], reverse=True,
    )
    debtors = sorted(
        ([user, -Decimal(str(amount))] for user, amount in balances.items() if Decimal(str(amount)) <= -CENT),
        key=lambda item: item[1], reverse=True,
    )

    transfers: List[Transfer] = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor, debtor = creditors[i], debtors[j]
        amount = min(creditor[1], debtor[1])
        if amount >= CENT:
            transfers.append(Transfer(debtor[0], creditor[0], amount.quantize(CENT, rounding=ROUND_HALF_UP)))
        creditor[1] -= amount
        debtor[1] -= amount
        if creditor[1] < CENT:
            i += 1
        if debtor[1] < CENT:
            j += 1

    return transfers
