"""
Services package for business logic and external integrations.
"""

from .categorizer import CategorySuggester, get_categorizer, EXPENSE_CATEGORIES
from .expense_manager import ExpenseManager
from .template_manager import TemplateManager, UsedTemplate
from .settlement_manager import SettlementManager
from .report_generator import ReportGenerator
from .budget_manager import BudgetManager

__all__ = [
    'CategorySuggester', 'get_categorizer', 'EXPENSE_CATEGORIES',
    'ExpenseManager', 'TemplateManager', 'UsedTemplate',
    'SettlementManager', 'ReportGenerator', 'BudgetManager',
]
