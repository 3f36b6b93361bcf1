"""
Expense Manager for handling business logic related to expense operations.
"""

import logging
from decimal import Decimal
from typing import Dict, Any, List, Optional, Tuple

from ..core.database import DatabaseManager, get_db
from ..core.models import Expense
from ..utils.splits import rescale_splits

logger = logging.getLogger(__name__)

UPSERT_USER = """
    INSERT INTO users (telegram_id, username, first_name)
    VALUES (%s, %s, %s)
    ON CONFLICT (telegram_id) DO UPDATE
    SET username = EXCLUDED.username,
        first_name = EXCLUDED.first_name
"""

UPSERT_GROUP = """
    INSERT INTO groups (telegram_id, title)
    VALUES (%s, %s)
    ON CONFLICT (telegram_id) DO UPDATE
    SET title = EXCLUDED.title
"""

UPSERT_MEMBERSHIP = """
    INSERT INTO group_members (group_id, user_id, active)
    VALUES (%s, %s, TRUE)
    ON CONFLICT (group_id, user_id) DO UPDATE
    SET active = TRUE
"""


class ExpenseManager:
    """
    Manager for expense-related business logic operations.
    """

    def __init__(self, db_manager: DatabaseManager = None):
        self.db = db_manager or get_db()

    # ------------------------------------------------------------------
    # Participant tracking
    # ------------------------------------------------------------------

    def track_participant(self, user_id: int, username: str = None, first_name: str = None,
                          group_id: int = None, group_title: str = None):
        """
        Record the sender of a message, and their group membership when the
        message came from a group.
        """
        with self.db.transaction() as cursor:
            cursor.execute(UPSERT_USER, (user_id, username, first_name))
            if group_id is not None:
                cursor.execute(UPSERT_GROUP, (group_id, group_title or 'Unnamed Group'))
                cursor.execute(UPSERT_MEMBERSHIP, (group_id, user_id))

    def resolve_usernames(self, group_id: int, usernames: List[str]) -> Tuple[Dict[str, int], List[str]]:
        """
        Map @usernames to telegram ids among the active members of a group.

        Returns:
            tuple: ({lowercase username: telegram id}, [usernames not found])
        """
        wanted = [name.lstrip('@').lower() for name in usernames if name]
        if not wanted:
            return {}, []

        rows = self.db.fetch_all(
            """
            SELECT u.telegram_id, LOWER(u.username) AS username
            FROM users u
            JOIN group_members gm ON gm.user_id = u.telegram_id
            WHERE gm.group_id = %s
              AND gm.active = TRUE
              AND LOWER(u.username) = ANY(%s)
            """,
            (group_id, wanted)
        )
        found = {row['username']: row['telegram_id'] for row in rows}
        missing = [name for name in dict.fromkeys(wanted) if name not in found]
        return found, missing

    def active_member_ids(self, group_id: int) -> List[int]:
        """Telegram ids of the active members of a group."""
        rows = self.db.fetch_all(
            """
            SELECT user_id
            FROM group_members
            WHERE group_id = %s AND active = TRUE
            ORDER BY joined_at
            """,
            (group_id,)
        )
        return [row['user_id'] for row in rows]

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def add_expense(self, group_id: Optional[int], amount: Decimal, description: str,
                    paid_by: int, created_by: int, splits: Dict[int, Decimal] = None,
                    category: str = None, template_id: int = None) -> int:
        """
        Insert an expense and its splits in one transaction.

        Args:
            group_id (int): Group chat id, None for a personal expense
            amount (Decimal): Total amount
            description (str): What the expense was for
            paid_by (int): Telegram id of the payer
            created_by (int): Telegram id of whoever recorded it
            splits (dict): {telegram id: share}; ignored for personal expenses
            category (str): Optional category
            template_id (int): Template the expense was replayed from

        Returns:
            int: Expense ID
        """
        is_personal = group_id is None

        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO expenses
                (group_id, amount, description, category, paid_by, created_by, is_personal, template_id)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (group_id, amount, description, category, paid_by, created_by, is_personal, template_id)
            )
            expense_id = cursor.fetchone()['id']

            if not is_personal:
                for user_id, share in (splits or {}).items():
                    cursor.execute(
                        "INSERT INTO expense_splits (expense_id, user_id, amount) VALUES (%s, %s, %s)",
                        (expense_id, user_id, share)
                    )

        logger.info(
            f"Inserted expense {expense_id} ({amount}) "
            f"{'personal' if is_personal else f'in group {group_id}'} with {len(splits or {})} splits"
        )
        return expense_id

    def get_expense(self, expense_id: int, group_id: Optional[int]) -> Optional[Dict[str, Any]]:
        """
        Live expense with its creator's names. group_id None looks among
        personal expenses instead of a group's.
        """
        if group_id is None:
            scope, params = "e.group_id IS NULL", (expense_id,)
        else:
            scope, params = "e.group_id = %s", (expense_id, group_id)

        return self.db.fetch_one(
            f"""
            SELECT e.id, e.description, e.amount, e.category, e.paid_by, e.created_by,
                   e.is_personal, u.username, u.first_name
            FROM expenses e
            LEFT JOIN users u ON u.telegram_id = e.created_by
            WHERE e.id = %s AND {scope} AND e.deleted = FALSE
            """,
            params
        )

    def update_expense_amount(self, expense_id: int, amount: Decimal) -> Dict[int, Decimal]:
        """
        Change the amount of an expense and rescale its splits to match, in
        one transaction.

        Returns:
            dict: {telegram id: new share}, empty for personal expenses
        """
        with self.db.transaction() as cursor:
            cursor.execute(
                "SELECT user_id, amount FROM expense_splits WHERE expense_id = %s FOR UPDATE",
                (expense_id,)
            )
            old_splits = {row['user_id']: row['amount'] for row in cursor.fetchall()}

            cursor.execute(
                "UPDATE expenses SET amount = %s WHERE id = %s AND deleted = FALSE",
                (amount, expense_id)
            )

            new_splits = rescale_splits(old_splits, amount)
            for user_id, share in new_splits.items():
                cursor.execute(
                    "UPDATE expense_splits SET amount = %s WHERE expense_id = %s AND user_id = %s",
                    (share, expense_id, user_id)
                )

        logger.info(f"Expense {expense_id} amount changed to {amount}, {len(new_splits)} splits rescaled")
        return new_splits

    def update_expense_details(self, expense_id: int, description: str = None, category: str = None) -> bool:
        """Change the description and/or category of a live expense."""
        changed = self.db.execute(
            """
            UPDATE expenses
            SET description = COALESCE(%s, description),
                category = COALESCE(%s, category)
            WHERE id = %s AND deleted = FALSE
            """,
            (description, category, expense_id)
        )
        return bool(changed)

    def soft_delete_expense(self, expense_id: int) -> bool:
        """Mark an expense deleted. Returns True when a row changed."""
        changed = self.db.execute(
            "UPDATE expenses SET deleted = TRUE WHERE id = %s AND deleted = FALSE",
            (expense_id,)
        )
        return bool(changed)

    def get_group_history(self, group_id: int, limit: int = 20) -> List[Dict[str, Any]]:
        """
        Recent expenses and settlements of a group, newest first.
        """
        return self.db.fetch_all(
            """
            SELECT * FROM (
                SELECT
                    'expense' AS type,
                    e.id,
                    e.amount,
                    e.description,
                    e.category,
                    e.created_at,
                    u.username AS user_username,
                    u.first_name AS user_first_name,
                    NULL AS to_username,
                    NULL AS to_first_name,
                    (SELECT COUNT(*) FROM expense_splits es WHERE es.expense_id = e.id) AS split_count
                FROM expenses e
                LEFT JOIN users u ON e.paid_by = u.telegram_id
                WHERE e.group_id = %s AND e.deleted = FALSE

                UNION ALL

                SELECT
                    'settlement' AS type,
                    s.id,
                    s.amount,
                    'Settlement' AS description,
                    NULL AS category,
                    s.created_at,
                    u1.username AS user_username,
                    u1.first_name AS user_first_name,
                    u2.username AS to_username,
                    u2.first_name AS to_first_name,
                    0 AS split_count
                FROM settlements s
                LEFT JOIN users u1 ON s.from_user = u1.telegram_id
                LEFT JOIN users u2 ON s.to_user = u2.telegram_id
                WHERE s.group_id = %s
            ) AS transactions
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (group_id, group_id, limit)
        )

    def get_personal_history(self, user_id: int, limit: int = 20) -> List[Expense]:
        """Recent personal expenses of a user, newest first."""
        rows = self.db.fetch_all(
            """
            SELECT id, amount, description, category, paid_by, created_by, is_personal, created_at
            FROM expenses
            WHERE paid_by = %s AND is_personal = TRUE AND deleted = FALSE
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (user_id, limit)
        )
        return [Expense.from_dict(row) for row in rows]
