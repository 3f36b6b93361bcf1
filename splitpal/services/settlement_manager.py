"""
Settlement Manager: balances between group members and recorded payments.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List

from ..core.database import DatabaseManager, get_db

logger = logging.getLogger(__name__)

# Who owes whom inside one group. Expense splits create debt from the split
# user to the payer; settlements from debtor to creditor reduce it.
PAIRWISE_BALANCES = """
    WITH expense_balances AS (
        SELECT e.paid_by AS creditor, es.user_id AS debtor, SUM(es.amount) AS amount
        FROM expenses e
        JOIN expense_splits es ON e.id = es.expense_id
        WHERE e.group_id = %s AND e.deleted = FALSE
        GROUP BY e.paid_by, es.user_id
    ),
    settlement_balances AS (
        SELECT to_user AS creditor, from_user AS debtor, SUM(amount) AS amount
        FROM settlements
        WHERE group_id = %s
        GROUP BY to_user, from_user
    ),
    all_balances AS (
        SELECT creditor, debtor, amount FROM expense_balances
        UNION ALL
        SELECT creditor, debtor, -amount FROM settlement_balances
    ),
    net_balances AS (
        SELECT
            LEAST(creditor, debtor) AS user1,
            GREATEST(creditor, debtor) AS user2,
            SUM(CASE WHEN creditor < debtor THEN amount ELSE -amount END) AS net_amount
        FROM all_balances
        WHERE creditor != debtor
        GROUP BY LEAST(creditor, debtor), GREATEST(creditor, debtor)
        HAVING ABS(SUM(CASE WHEN creditor < debtor THEN amount ELSE -amount END)) >= 0.01
    )
    SELECT
        nb.user1, nb.user2, nb.net_amount,
        u1.username AS user1_username, u1.first_name AS user1_first_name,
        u2.username AS user2_username, u2.first_name AS user2_first_name
    FROM net_balances nb
    LEFT JOIN users u1 ON nb.user1 = u1.telegram_id
    LEFT JOIN users u2 ON nb.user2 = u2.telegram_id
    ORDER BY ABS(nb.net_amount) DESC
"""


class SettlementManager:
    """
    Manager for balances and settlements inside a group.
    """

    def __init__(self, db_manager: DatabaseManager = None):
        self.db = db_manager or get_db()

    def net_balance(self, group_id: int, user_a: int, user_b: int) -> Decimal:
        """
        Net balance between two members.

        Returns:
            Decimal: Positive when user_b owes user_a, negative when user_a owes user_b
        """
        row = self.db.fetch_one(
            """
            SELECT
                COALESCE((
                    SELECT SUM(es.amount) FROM expenses e
                    JOIN expense_splits es ON e.id = es.expense_id
                    WHERE e.group_id = %s AND e.deleted = FALSE
                      AND e.paid_by = %s AND es.user_id = %s
                ), 0)
                - COALESCE((
                    SELECT SUM(es.amount) FROM expenses e
                    JOIN expense_splits es ON e.id = es.expense_id
                    WHERE e.group_id = %s AND e.deleted = FALSE
                      AND e.paid_by = %s AND es.user_id = %s
                ), 0)
                - COALESCE((
                    SELECT SUM(amount) FROM settlements
                    WHERE group_id = %s AND from_user = %s AND to_user = %s
                ), 0)
                + COALESCE((
                    SELECT SUM(amount) FROM settlements
                    WHERE group_id = %s AND from_user = %s AND to_user = %s
                ), 0) AS net_balance
            """,
            (
                group_id, user_a, user_b,
                group_id, user_b, user_a,
                group_id, user_b, user_a,
                group_id, user_a, user_b,
            )
        )
        return Decimal(str(row['net_balance'])) if row and row['net_balance'] is not None else Decimal('0')

    def record_settlement(self, group_id: int, from_user: int, to_user: int,
                          amount: Decimal, created_by: int) -> int:
        """
        Record that from_user paid to_user.

        Returns:
            int: Settlement ID
        """
        row = self.db.execute(
            """
            INSERT INTO settlements (group_id, from_user, to_user, amount, created_by)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id
            """,
            (group_id, from_user, to_user, amount, created_by)
        )
        settlement_id = row['id']
        logger.info(f"Recorded settlement {settlement_id}: {from_user} -> {to_user} {amount} in group {group_id}")
        return settlement_id

    def group_balances(self, group_id: int) -> List[Dict[str, Any]]:
        """
        Outstanding pairwise balances of a group, largest first.

        A positive net_amount means user2 owes user1.
        """
        return self.db.fetch_all(PAIRWISE_BALANCES, (group_id, group_id))

    def member_balances(self, group_id: int) -> Dict[int, Decimal]:
        """
        Net position of every member: positive when the group owes them.
        """
        return self.net_positions(self.group_balances(group_id))

    @staticmethod
    def net_positions(rows: List[Dict[str, Any]]) -> Dict[int, Decimal]:
        """Fold pairwise balance rows into one net amount per member."""
        positions: Dict[int, Decimal] = {}
        for row in rows:
            amount = Decimal(str(row['net_amount']))
            positions[row['user1']] = positions.get(row['user1'], Decimal('0')) + amount
            positions[row['user2']] = positions.get(row['user2'], Decimal('0')) - amount
        return positions
