"""
Budget Manager for personal spending limits and the alerts they raise.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from ..core.database import DatabaseManager, get_db
from ..core.models import Budget
from ..utils.formatters import escape_html, format_currency, format_percentage
from ..utils.validators import BUDGET_PERIODS

logger = logging.getLogger(__name__)

PERIOD_NOUNS = {'daily': 'day', 'weekly': 'week', 'monthly': 'month'}

# Highest first; an alert fires when an expense pushes spending past one
ALERT_THRESHOLDS = (100, 90, 75)

SPENT_IN_CATEGORY = """
    SELECT COALESCE(SUM(amount), 0) AS spent FROM (
        SELECT e.amount
        FROM expenses e
        WHERE e.paid_by = %s
          AND e.is_personal = TRUE
          AND e.deleted = FALSE
          AND LOWER(e.category) = LOWER(%s)
          AND e.created_at >= %s

        UNION ALL

        SELECT es.amount
        FROM expense_splits es
        JOIN expenses e ON e.id = es.expense_id
        WHERE es.user_id = %s
          AND e.deleted = FALSE
          AND LOWER(e.category) = LOWER(%s)
          AND e.created_at >= %s
    ) AS spending
"""


def period_start(period: str, now: datetime = None) -> datetime:
    """Start of the calendar day, week (Monday) or month containing now."""
    now = now or datetime.now()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == 'daily':
        return today
    if period == 'weekly':
        return today - timedelta(days=today.weekday())
    return today.replace(day=1)


def threshold_reached(spent: Decimal, limit: Decimal) -> Optional[int]:
    """Highest alert threshold spent has reached, or None below all of them."""
    if limit <= 0:
        return None
    percent = spent * 100 / limit
    for threshold in ALERT_THRESHOLDS:
        if percent >= threshold:
            return threshold
    return None


class BudgetManager:
    """
    Manager for per-category budgets.

    Spending counts personal expenses plus the user's shares of group
    expenses in the same category since the start of the budget period.
    """

    def __init__(self, db_manager: DatabaseManager = None):
        self.db = db_manager or get_db()

    def set_budget(self, user_id: int, category: str, amount: Decimal, period: str = 'monthly') -> Budget:
        """
        Create or replace the budget a user has for a category.

        Raises:
            ValueError: when period is not daily, weekly or monthly
        """
        if period not in BUDGET_PERIODS:
            raise ValueError(f"Unknown budget period: {period}")

        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO budgets (user_id, category, amount, period)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (user_id, category) DO UPDATE
                SET amount = EXCLUDED.amount,
                    period = EXCLUDED.period,
                    updated_at = CURRENT_TIMESTAMP
                RETURNING id
                """,
                (user_id, category, amount, period)
            )
            budget_id = cursor.fetchone()['id']

        logger.info(f"User {user_id} set a {period} budget of {amount} for {category}")
        return Budget(id=budget_id, user_id=user_id, category=category, amount=amount, period=period)

    def delete_budget(self, user_id: int, category: str) -> bool:
        """Remove a budget. Returns True when one existed."""
        changed = self.db.execute(
            "DELETE FROM budgets WHERE user_id = %s AND LOWER(category) = LOWER(%s)",
            (user_id, category)
        )
        return bool(changed)

    def get_budget(self, user_id: int, category: str) -> Optional[Budget]:
        row = self.db.fetch_one(
            "SELECT * FROM budgets WHERE user_id = %s AND LOWER(category) = LOWER(%s)",
            (user_id, category)
        )
        return Budget.from_dict(row) if row else None

    def spent_in_category(self, user_id: int, category: str, since: datetime) -> Decimal:
        row = self.db.fetch_one(
            SPENT_IN_CATEGORY,
            (user_id, category, since, user_id, category, since)
        )
        return Decimal(str(row['spent'])) if row else Decimal('0')

    def list_budgets(self, user_id: int, now: datetime = None) -> List[Budget]:
        """Budgets of a user with what was spent in the current period."""
        rows = self.db.fetch_all(
            "SELECT * FROM budgets WHERE user_id = %s ORDER BY category",
            (user_id,)
        )
        budgets = [Budget.from_dict(row) for row in rows]
        for budget in budgets:
            budget.spent = self.spent_in_category(user_id, budget.category, period_start(budget.period, now))
        return budgets

    def check_expense(self, user_id: int, category: str, amount: Decimal,
                      now: datetime = None) -> Optional[str]:
        """
        Alert text when an already stored expense of `amount` pushed the
        user's spending in `category` past a threshold it had not reached.

        Returns:
            str: HTML alert, or None when there is no budget or nothing crossed
        """
        if not category:
            return None

        budget = self.get_budget(user_id, category)
        if budget is None:
            return None

        spent = self.spent_in_category(user_id, budget.category, period_start(budget.period, now))
        reached = threshold_reached(spent, budget.amount)
        before = threshold_reached(spent - Decimal(str(amount)), budget.amount)
        if reached is None or (before is not None and before >= reached):
            return None

        logger.info(f"User {user_id} reached {reached}% of their {budget.category} budget")
        return self.format_alert(budget, spent, reached)

    @staticmethod
    def format_alert(budget: Budget, spent: Decimal, threshold: int) -> str:
        category = escape_html(budget.category)
        if threshold >= 100:
            return (
                f"🚨 Budget exceeded for <b>{category}</b>! You've spent {format_currency(spent)} "
                f"of your {format_currency(budget.amount)} {budget.period} budget."
            )
        if threshold >= 90:
            return (
                f"⚠️ 90% of <b>{category}</b> budget used! {format_currency(spent)} of "
                f"{format_currency(budget.amount)} {budget.period} budget spent."
            )
        remaining = budget.amount - spent
        return (
            f"💡 75% of <b>{category}</b> budget used. {format_currency(remaining)} "
            f"remaining for this {PERIOD_NOUNS.get(budget.period, 'period')}."
        )

    @staticmethod
    def format_budgets(budgets: List[Budget]) -> str:
        """HTML list of budgets with a traffic light per budget."""
        text = "💰 <b>Your Budgets</b>\n\n"
        for budget in budgets:
            percent = budget.percentage
            if percent >= 100:
                light = "🔴"
            elif percent >= 80:
                light = "🟡"
            else:
                light = "🟢"
            text += f"{light} <b>{escape_html(budget.category)}</b>\n"
            text += f"   Budget: {format_currency(budget.amount)} {budget.period}\n"
            text += (
                f"   Spent: {format_currency(budget.spent)} "
                f"({format_percentage(budget.spent, budget.amount)})\n\n"
            )
        return text
