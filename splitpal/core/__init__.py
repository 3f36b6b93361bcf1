"""
Core package for database operations and models.
"""

from .database import DatabaseManager, get_db
from .models import Template, Expense, metadata

__all__ = ['DatabaseManager', 'get_db', 'Template', 'Expense', 'metadata']
