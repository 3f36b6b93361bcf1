"""
Template Manager for saved, reusable expense definitions.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from ..core.database import DatabaseManager, get_db
from ..core.models import Template
from ..utils.helpers import make_shortcut
from ..utils.splits import even_split
from .expense_manager import ExpenseManager

logger = logging.getLogger(__name__)

# Templates visible from a chat: personal ones plus the ones tied to this group
VISIBLE_IN_CHAT = "user_id = %s AND (group_id IS NULL OR group_id = %s) AND deleted = FALSE"


class UsedTemplate(NamedTuple):
    expense_id: int
    splits: Dict[int, Decimal]


class TemplateManager:
    """
    Manager for the template lifecycle: list, create, edit, delete, replay.
    """

    def __init__(self, db_manager: DatabaseManager = None, expense_manager: ExpenseManager = None,
                 reserved_shortcuts: Iterable[str] = ()):
        self.db = db_manager or get_db()
        self.expenses = expense_manager or ExpenseManager(self.db)
        self.reserved_shortcuts = {name.lower() for name in reserved_shortcuts}

    def list_templates(self, user_id: int, group_id: Optional[int], limit: int = 10) -> List[Template]:
        """
        Get the most used templates visible in a chat.

        Args:
            user_id (int): Telegram user ID
            group_id (int): Group chat ID, None in a private chat
            limit (int): Maximum number of templates

        Returns:
            list: Templates ordered by usage, most recently used first on ties
        """
        rows = self.db.fetch_all(
            f"""
            SELECT * FROM expense_templates
            WHERE {VISIBLE_IN_CHAT}
            ORDER BY usage_count DESC, last_used DESC NULLS LAST, created_at DESC
            LIMIT %s
            """,
            (user_id, group_id, limit)
        )
        return [Template.from_dict(row) for row in rows]

    def suggest_from_history(self, user_id: int, group_id: Optional[int]) -> List[Dict[str, Any]]:
        """
        Find descriptions the user entered at least three times in the last
        30 days; good candidates for a template.
        """
        scope = "AND group_id = %s" if group_id is not None else "AND is_personal = TRUE"
        params = (user_id, group_id) if group_id is not None else (user_id,)

        return self.db.fetch_all(
            f"""
            SELECT
                MIN(description) AS description,
                COUNT(*) AS count,
                ROUND(AVG(amount), 2) AS avg_amount
            FROM expenses
            WHERE created_by = %s
              {scope}
              AND deleted = FALSE
              AND created_at > NOW() - INTERVAL '30 days'
            GROUP BY LOWER(description)
            HAVING COUNT(*) >= 3
            ORDER BY count DESC
            LIMIT 5
            """,
            params
        )

    def create_template(self, user_id: int, group_id: Optional[int], name: str, amount: Decimal,
                        description: str = None, category: str = None,
                        participants: List[int] = None) -> Template:
        """
        Save a new template and try to give it a shortcut command.

        Returns:
            Template: The stored template; shortcut is None when the derived
            one was empty, reserved or already taken by this user
        """
        template = Template(
            user_id=user_id,
            group_id=group_id,
            name=name,
            description=description or name,
            amount=amount,
            category=category,
            participants=participants,
        )

        shortcut = make_shortcut(name)
        if shortcut in self.reserved_shortcuts:
            shortcut = ''

        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO expense_templates
                (user_id, group_id, name, description, amount, category, participants, usage_count)
                VALUES (%s, %s, %s, %s, %s, %s, %s, 0)
                RETURNING id, created_at
                """,
                (user_id, group_id, template.name, template.description, amount,
                 category, template.participants_json())
            )
            row = cursor.fetchone()
            template.id = row['id']
            template.created_at = row['created_at']

            if shortcut:
                cursor.execute(
                    """
                    UPDATE expense_templates
                    SET shortcut = %s
                    WHERE id = %s
                      AND NOT EXISTS (
                          SELECT 1 FROM expense_templates
                          WHERE shortcut = %s AND user_id = %s AND deleted = FALSE
                      )
                    """,
                    (shortcut, template.id, shortcut, user_id)
                )
                if cursor.rowcount:
                    template.shortcut = shortcut

        logger.info(f"Created template {template.id} '{name}' for user {user_id}")
        return template

    def update_template(self, user_id: int, name: str, amount: Decimal, description: str = None) -> bool:
        """
        Change the amount (and optionally the description) of a template.

        Returns:
            bool: False when no live template has that name
        """
        changed = self.db.execute(
            """
            UPDATE expense_templates
            SET amount = %s,
                description = COALESCE(%s, description)
            WHERE LOWER(name) = LOWER(%s) AND user_id = %s AND deleted = FALSE
            """,
            (amount, description, name, user_id)
        )
        return bool(changed)

    def delete_template(self, user_id: int, name: str) -> bool:
        """Soft-delete a template by name. Returns False when none matched."""
        changed = self.db.execute(
            """
            UPDATE expense_templates
            SET deleted = TRUE
            WHERE LOWER(name) = LOWER(%s) AND user_id = %s AND deleted = FALSE
            """,
            (name, user_id)
        )
        return bool(changed)

    def find_by_shortcut(self, user_id: int, group_id: Optional[int], shortcut: str) -> Optional[Template]:
        row = self.db.fetch_one(
            f"SELECT * FROM expense_templates WHERE shortcut = %s AND {VISIBLE_IN_CHAT}",
            (shortcut.lower(), user_id, group_id)
        )
        return Template.from_dict(row) if row else None

    def find_by_name(self, user_id: int, group_id: Optional[int], name: str) -> Optional[Template]:
        row = self.db.fetch_one(
            f"SELECT * FROM expense_templates WHERE LOWER(name) = LOWER(%s) AND {VISIBLE_IN_CHAT}",
            (name, user_id, group_id)
        )
        return Template.from_dict(row) if row else None

    def get_template(self, template_id: int) -> Optional[Template]:
        row = self.db.fetch_one(
            "SELECT * FROM expense_templates WHERE id = %s AND deleted = FALSE",
            (template_id,)
        )
        return Template.from_dict(row) if row else None

    def use_template(self, template: Template, user_id: int, group_id: Optional[int]) -> UsedTemplate:
        """
        Materialize a template into a new expense paid by user_id.

        Splits go evenly over the template's participants; without stored
        participants a group expense is split over the active members (or the
        user alone), and a personal expense has no splits.
        """
        splits: Dict[int, Decimal] = {}
        if group_id is not None:
            participants = template.participants or self.expenses.active_member_ids(group_id) or [user_id]
            splits = even_split(template.amount, participants)

        expense_id = self.expenses.add_expense(
            group_id=group_id,
            amount=template.amount,
            description=template.description,
            paid_by=user_id,
            created_by=user_id,
            splits=splits,
            category=template.category,
            template_id=template.id,
        )

        self.db.execute(
            """
            UPDATE expense_templates
            SET usage_count = usage_count + 1,
                last_used = CURRENT_TIMESTAMP
            WHERE id = %s
            """,
            (template.id,)
        )
        template.usage_count += 1

        logger.info(f"Template {template.id} replayed as expense {expense_id} by user {user_id}")
        return UsedTemplate(expense_id=expense_id, splits=splits)
