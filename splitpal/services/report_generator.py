"""
Report Generator for monthly summaries and personal overviews.
"""

import calendar
import logging
from decimal import Decimal
from typing import Dict, Any, List

from ..core.database import DatabaseManager, get_db
from ..utils.formatters import (
    display_name, escape_html, format_currency, format_percentage, month_title,
)
from ..utils.helpers import month_date_range

logger = logging.getLogger(__name__)

MEDALS = ['🥇', '🥈', '🥉']


def _money(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal('0')


class ReportGenerator:
    """
    Generator for monthly summaries and cross-group overviews.
    """

    def __init__(self, db_manager: DatabaseManager = None):
        self.db = db_manager or get_db()

    def monthly_group_summary(self, group_id: int, year: int, month: int) -> Dict[str, Any]:
        """
        Aggregate one calendar month of a group's activity.

        Args:
            group_id (int): Group chat ID
            year (int): Year
            month (int): Month (1-12)

        Returns:
            dict: Overview counts and totals, top spenders and category breakdown
        """
        start, end = month_date_range(year, month)
        window = (group_id, start, end)

        overview = self.db.fetch_one(
            """
            SELECT
                COUNT(*) AS expense_count,
                SUM(amount) AS total_amount,
                COUNT(DISTINCT paid_by) AS unique_payers,
                COUNT(DISTINCT DATE(created_at)) AS active_days
            FROM expenses
            WHERE group_id = %s
              AND deleted = FALSE
              AND created_at >= %s AND created_at < %s
            """,
            window
        ) or {}

        settled = self.db.fetch_one(
            """
            SELECT COUNT(*) AS settlement_count, SUM(amount) AS total_settled
            FROM settlements
            WHERE group_id = %s
              AND created_at >= %s AND created_at < %s
            """,
            window
        ) or {}

        top_spenders = self.db.fetch_all(
            """
            SELECT
                e.paid_by,
                u.username,
                u.first_name,
                SUM(e.amount) AS total_paid,
                COUNT(*) AS expense_count
            FROM expenses e
            LEFT JOIN users u ON e.paid_by = u.telegram_id
            WHERE e.group_id = %s
              AND e.deleted = FALSE
              AND e.created_at >= %s AND e.created_at < %s
            GROUP BY e.paid_by, u.username, u.first_name
            ORDER BY total_paid DESC
            LIMIT 5
            """,
            window
        )

        categories = self._category_breakdown("group_id = %s", window)

        summary = {
            'year': year,
            'month': month,
            'expense_count': overview.get('expense_count') or 0,
            'total_amount': _money(overview.get('total_amount')),
            'unique_payers': overview.get('unique_payers') or 0,
            'active_days': overview.get('active_days') or 0,
            'settlement_count': settled.get('settlement_count') or 0,
            'total_settled': _money(settled.get('total_settled')),
            'top_spenders': top_spenders,
            'categories': categories,
        }

        logger.info(f"Retrieved monthly summary for group {group_id}, {year}-{month:02d}")
        return summary

    def monthly_personal_summary(self, user_id: int, year: int, month: int) -> Dict[str, Any]:
        """
        Aggregate one calendar month of a user's personal expenses.
        """
        start, end = month_date_range(year, month)
        window = (user_id, start, end)

        overview = self.db.fetch_one(
            """
            SELECT
                COUNT(*) AS expense_count,
                SUM(amount) AS total_amount,
                COUNT(DISTINCT DATE(created_at)) AS active_days
            FROM expenses
            WHERE paid_by = %s
              AND is_personal = TRUE
              AND deleted = FALSE
              AND created_at >= %s AND created_at < %s
            """,
            window
        ) or {}

        categories = self._category_breakdown("paid_by = %s AND is_personal = TRUE", window)

        return {
            'year': year,
            'month': month,
            'expense_count': overview.get('expense_count') or 0,
            'total_amount': _money(overview.get('total_amount')),
            'active_days': overview.get('active_days') or 0,
            'categories': categories,
        }

    def _category_breakdown(self, scope: str, window: tuple) -> List[Dict[str, Any]]:
        return self.db.fetch_all(
            f"""
            SELECT
                COALESCE(category, 'Uncategorized') AS category,
                COUNT(*) AS count,
                SUM(amount) AS total
            FROM expenses
            WHERE {scope}
              AND deleted = FALSE
              AND created_at >= %s AND created_at < %s
            GROUP BY COALESCE(category, 'Uncategorized')
            ORDER BY total DESC
            """,
            window
        )

    def personal_overview(self, user_id: int) -> Dict[str, Any]:
        """
        Cross-group view for one user: balances, spending per group and
        personal expense totals.
        """
        balances = self.db.fetch_all(
            """
            WITH user_balances AS (
                SELECT e.group_id, e.paid_by AS creditor, es.user_id AS debtor, SUM(es.amount) AS amount
                FROM expenses e
                JOIN expense_splits es ON e.id = es.expense_id
                WHERE e.deleted = FALSE
                  AND e.group_id IS NOT NULL
                  AND (e.paid_by = %s OR es.user_id = %s)
                GROUP BY e.group_id, e.paid_by, es.user_id

                UNION ALL

                SELECT s.group_id, s.to_user AS creditor, s.from_user AS debtor, -s.amount AS amount
                FROM settlements s
                WHERE s.from_user = %s OR s.to_user = %s
            )
            SELECT
                ub.group_id,
                g.title AS group_name,
                SUM(CASE
                    WHEN ub.creditor = %s THEN ub.amount
                    WHEN ub.debtor = %s THEN -ub.amount
                    ELSE 0
                END) AS net_balance
            FROM user_balances ub
            JOIN groups g ON g.telegram_id = ub.group_id
            WHERE ub.creditor != ub.debtor
            GROUP BY ub.group_id, g.title
            HAVING ABS(SUM(CASE
                    WHEN ub.creditor = %s THEN ub.amount
                    WHEN ub.debtor = %s THEN -ub.amount
                    ELSE 0
                END)) >= 0.01
            ORDER BY ABS(SUM(CASE
                    WHEN ub.creditor = %s THEN ub.amount
                    WHEN ub.debtor = %s THEN -ub.amount
                    ELSE 0
                END)) DESC
            """,
            (user_id,) * 10
        )

        spending = self.db.fetch_all(
            """
            SELECT
                g.title AS group_name,
                COUNT(*) AS expense_count,
                SUM(e.amount) AS total_paid
            FROM expenses e
            JOIN groups g ON e.group_id = g.telegram_id
            WHERE e.paid_by = %s AND e.deleted = FALSE
            GROUP BY g.telegram_id, g.title
            ORDER BY total_paid DESC
            """,
            (user_id,)
        )

        personal = self.db.fetch_one(
            """
            SELECT COUNT(*) AS expense_count, SUM(amount) AS total_amount, AVG(amount) AS avg_amount
            FROM expenses
            WHERE paid_by = %s AND is_personal = TRUE AND deleted = FALSE
            """,
            (user_id,)
        ) or {}

        personal_categories = self.db.fetch_all(
            """
            SELECT COALESCE(category, 'Uncategorized') AS category, COUNT(*) AS count, SUM(amount) AS total
            FROM expenses
            WHERE paid_by = %s AND is_personal = TRUE AND deleted = FALSE
            GROUP BY COALESCE(category, 'Uncategorized')
            ORDER BY total DESC
            """,
            (user_id,)
        )

        return {
            'balances': balances,
            'spending': spending,
            'personal_count': personal.get('expense_count') or 0,
            'personal_total': _money(personal.get('total_amount')),
            'personal_average': _money(personal.get('avg_amount')),
            'personal_categories': personal_categories,
        }

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @staticmethod
    def format_group_summary(summary: Dict[str, Any], group_title: str) -> str:
        """Render a monthly group summary as HTML."""
        text = f"📅 <b>Monthly Summary - {month_title(summary['year'], summary['month'])}</b>\n"
        text += f"📍 {escape_html(group_title or 'This Group')}\n\n"

        if not summary['expense_count']:
            text += "🔍 No expenses recorded for this month.\n\n"
            text += "Try a different month or start adding expenses!"
            return text

        total = summary['total_amount']
        active_days = summary['active_days'] or 1

        text += "<b>📊 Overview</b>\n"
        text += f"• Expenses: {summary['expense_count']} totaling {format_currency(total)}\n"
        text += f"• Settlements: {summary['settlement_count']} totaling {format_currency(summary['total_settled'])}\n"
        text += f"• Active days: {summary['active_days']}\n"
        text += f"• Daily average: {format_currency(total / active_days)}\n\n"

        if summary['top_spenders']:
            text += "<b>🏆 Top Spenders</b>\n"
            for index, spender in enumerate(summary['top_spenders']):
                medal = MEDALS[index] if index < len(MEDALS) else '  •'
                name = escape_html(display_name(spender.get('username'), spender.get('first_name')))
                text += f"{medal} {name}: {format_currency(spender['total_paid'])} ({spender['expense_count']}x)\n"
            text += "\n"

        if summary['categories']:
            text += "<b>📂 Category Breakdown</b>\n"
            for item in summary['categories']:
                text += (
                    f"• {escape_html(item['category'])}: {format_currency(item['total'])} "
                    f"({format_percentage(item['total'], total)})\n"
                )

        return text

    @staticmethod
    def format_personal_monthly(summary: Dict[str, Any]) -> str:
        """Render a monthly personal summary as HTML."""
        text = f"📅 <b>Personal Summary - {month_title(summary['year'], summary['month'])}</b>\n\n"

        if not summary['expense_count']:
            text += "🔍 No personal expenses recorded for this month.\n\n"
            text += "Track one with <code>/add 12.50 lunch</code>"
            return text

        total = summary['total_amount']
        days_in_month = calendar.monthrange(summary['year'], summary['month'])[1]

        text += f"• Expenses: {summary['expense_count']} totaling {format_currency(total)}\n"
        text += f"• Average per expense: {format_currency(total / summary['expense_count'])}\n"
        text += f"• Daily average: {format_currency(total / days_in_month)}\n\n"

        if summary['categories']:
            text += "<b>📂 By Category</b>\n"
            for item in summary['categories']:
                text += (
                    f"• {escape_html(item['category'])}: {format_currency(item['total'])} "
                    f"({format_percentage(item['total'], total)})\n"
                )

        return text

    @staticmethod
    def format_personal_overview(overview: Dict[str, Any]) -> str:
        """Render the cross-group overview as HTML."""
        text = "👤 <b>Your Personal Summary</b>\n\n"

        if overview['balances']:
            text += "💰 <b>Balances Across Groups:</b>\n"
            owed = owing = Decimal('0')
            for balance in overview['balances']:
                amount = _money(balance['net_balance'])
                group = escape_html(balance['group_name'])
                if amount > 0:
                    text += f"✅ {group}: You're owed {format_currency(amount)}\n"
                    owed += amount
                else:
                    text += f"❌ {group}: You owe {format_currency(-amount)}\n"
                    owing += -amount
            text += "\n📊 <b>Summary:</b>\n"
            text += f"• Total owed to you: {format_currency(owed)}\n"
            text += f"• Total you owe: {format_currency(owing)}\n"
            text += f"• Net balance: {format_currency(owed - owing)}\n\n"
        else:
            text += "✨ You're all settled up across all groups!\n\n"

        if overview['spending']:
            text += "💳 <b>Your Spending by Group:</b>\n"
            total_spent = Decimal('0')
            for group in overview['spending']:
                total_spent += _money(group['total_paid'])
                text += (
                    f"• {escape_html(group['group_name'])}: {format_currency(group['total_paid'])} "
                    f"({group['expense_count']} expenses)\n"
                )
            text += f"\nTotal spent: {format_currency(total_spent)}\n\n"

        if overview['personal_count']:
            text += "🧾 <b>Personal Expense Tracking:</b>\n"
            text += f"• Total expenses: {overview['personal_count']}\n"
            text += f"• Total spent: {format_currency(overview['personal_total'])}\n"
            text += f"• Average expense: {format_currency(overview['personal_average'])}\n"

            if overview['personal_categories']:
                text += "\n📂 <b>Personal Spending by Category:</b>\n"
                for item in overview['personal_categories']:
                    text += (
                        f"• {escape_html(item['category'])}: {format_currency(item['total'])} "
                        f"({format_percentage(item['total'], overview['personal_total'])})\n"
                    )

        return text
