"""
Database models and schema definitions for SplitPal.
"""

import json
from decimal import Decimal
from typing import Dict, Any, List, Optional
from datetime import datetime

from sqlalchemy import (
    BigInteger, Boolean, Column, DateTime, ForeignKey, Index, Integer,
    MetaData, Numeric, String, Table, Text, func, text,
)

metadata = MetaData()

MONEY = Numeric(12, 2)

users = Table(
    'users', metadata,
    Column('telegram_id', BigInteger, primary_key=True),
    Column('username', String(64)),
    Column('first_name', String(128)),
    Column('created_at', DateTime, server_default=func.current_timestamp()),
)

groups = Table(
    'groups', metadata,
    Column('telegram_id', BigInteger, primary_key=True),
    Column('title', String(255)),
    Column('created_at', DateTime, server_default=func.current_timestamp()),
)

group_members = Table(
    'group_members', metadata,
    Column('group_id', BigInteger, ForeignKey('groups.telegram_id'), primary_key=True),
    Column('user_id', BigInteger, ForeignKey('users.telegram_id'), primary_key=True),
    Column('active', Boolean, nullable=False, server_default=text('TRUE')),
    Column('joined_at', DateTime, server_default=func.current_timestamp()),
)

expense_templates = Table(
    'expense_templates', metadata,
    Column('id', Integer, primary_key=True),
    Column('user_id', BigInteger, ForeignKey('users.telegram_id'), nullable=False),
    Column('group_id', BigInteger, ForeignKey('groups.telegram_id')),
    Column('name', String(50), nullable=False),
    Column('description', Text, nullable=False),
    Column('amount', MONEY, nullable=False),
    Column('category', String(50)),
    Column('participants', Text),  # JSON array of telegram ids
    Column('shortcut', String(10)),
    Column('usage_count', Integer, nullable=False, server_default=text('0')),
    Column('last_used', DateTime),
    Column('deleted', Boolean, nullable=False, server_default=text('FALSE')),
    Column('created_at', DateTime, server_default=func.current_timestamp()),
    Index('idx_templates_user', 'user_id', 'deleted'),
    Index(
        'uq_templates_user_shortcut', 'user_id', 'shortcut',
        unique=True, postgresql_where=text('deleted = FALSE AND shortcut IS NOT NULL'),
    ),
)

Index(
    'idx_templates_usage',
    expense_templates.c.usage_count.desc(),
    expense_templates.c.last_used.desc(),
)

expenses = Table(
    'expenses', metadata,
    Column('id', Integer, primary_key=True),
    Column('group_id', BigInteger, ForeignKey('groups.telegram_id')),  # NULL for personal
    Column('amount', MONEY, nullable=False),
    Column('description', Text, nullable=False),
    Column('category', String(50)),
    Column('paid_by', BigInteger, ForeignKey('users.telegram_id'), nullable=False),
    Column('created_by', BigInteger, ForeignKey('users.telegram_id'), nullable=False),
    Column('is_personal', Boolean, nullable=False, server_default=text('FALSE')),
    Column('template_id', Integer, ForeignKey('expense_templates.id')),
    Column('deleted', Boolean, nullable=False, server_default=text('FALSE')),
    Column('created_at', DateTime, server_default=func.current_timestamp()),
    Index('idx_expenses_group_created', 'group_id', 'created_at'),
    Index('idx_expenses_paid_by', 'paid_by'),
)

expense_splits = Table(
    'expense_splits', metadata,
    Column('expense_id', Integer, ForeignKey('expenses.id'), primary_key=True),
    Column('user_id', BigInteger, ForeignKey('users.telegram_id'), primary_key=True),
    Column('amount', MONEY, nullable=False),
)

settlements = Table(
    'settlements', metadata,
    Column('id', Integer, primary_key=True),
    Column('group_id', BigInteger, ForeignKey('groups.telegram_id'), nullable=False),
    Column('from_user', BigInteger, ForeignKey('users.telegram_id'), nullable=False),
    Column('to_user', BigInteger, ForeignKey('users.telegram_id'), nullable=False),
    Column('amount', MONEY, nullable=False),
    Column('created_by', BigInteger, ForeignKey('users.telegram_id'), nullable=False),
    Column('created_at', DateTime, server_default=func.current_timestamp()),
    Index('idx_settlements_group_created', 'group_id', 'created_at'),
)

budgets = Table(
    'budgets', metadata,
    Column('id', Integer, primary_key=True),
    Column('user_id', BigInteger, ForeignKey('users.telegram_id'), nullable=False),
    Column('category', String(50), nullable=False),
    Column('amount', MONEY, nullable=False),
    Column('period', String(10), nullable=False, server_default=text("'monthly'")),
    Column('created_at', DateTime, server_default=func.current_timestamp()),
    Column('updated_at', DateTime, server_default=func.current_timestamp()),
    Index('uq_budgets_user_category', 'user_id', 'category', unique=True),
)


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class Template:
    """
    Template model representing a saved, reusable expense definition.
    """

    def __init__(self, id: int = None, user_id: int = None, group_id: int = None,
                 name: str = "", description: str = "", amount: Decimal = Decimal('0'),
                 category: str = None, participants: List[int] = None,
                 shortcut: str = None, usage_count: int = 0, last_used: datetime = None,
                 created_at: datetime = None):
        self.id = id
        self.user_id = user_id
        self.group_id = group_id
        self.name = name
        self.description = description or name
        self.amount = amount
        self.category = category
        self.participants = participants or []
        self.shortcut = shortcut
        self.usage_count = usage_count
        self.last_used = last_used
        self.created_at = created_at

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Template':
        """Create Template instance from a database row."""
        participants = data.get('participants')
        if isinstance(participants, str):
            participants = json.loads(participants) if participants else []
        return cls(
            id=data.get('id'),
            user_id=data.get('user_id'),
            group_id=data.get('group_id'),
            name=data.get('name', ''),
            description=data.get('description', ''),
            amount=_to_decimal(data.get('amount')),
            category=data.get('category'),
            participants=[int(p) for p in participants or []],
            shortcut=data.get('shortcut'),
            usage_count=data.get('usage_count') or 0,
            last_used=data.get('last_used'),
            created_at=data.get('created_at')
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert Template to dictionary."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'group_id': self.group_id,
            'name': self.name,
            'description': self.description,
            'amount': str(self.amount),
            'category': self.category,
            'participants': list(self.participants),
            'shortcut': self.shortcut,
            'usage_count': self.usage_count,
            'last_used': self.last_used.isoformat() if self.last_used else None,
        }

    def participants_json(self) -> Optional[str]:
        """Participants as stored in the participants column."""
        return json.dumps(self.participants) if self.participants else None


class Expense:
    """
    Expense model. Group expenses carry splits, personal ones do not.
    """

    def __init__(self, id: int = None, group_id: int = None, amount: Decimal = Decimal('0'),
                 description: str = "", category: str = None, paid_by: int = None,
                 created_by: int = None, is_personal: bool = False,
                 template_id: int = None, created_at: datetime = None):
        self.id = id
        self.group_id = group_id
        self.amount = amount
        self.description = description
        self.category = category
        self.paid_by = paid_by
        self.created_by = created_by
        self.is_personal = is_personal
        self.template_id = template_id
        self.created_at = created_at or datetime.now()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Expense':
        """Create Expense instance from a database row."""
        return cls(
            id=data.get('id'),
            group_id=data.get('group_id'),
            amount=_to_decimal(data.get('amount')),
            description=data.get('description', ''),
            category=data.get('category'),
            paid_by=data.get('paid_by'),
            created_by=data.get('created_by'),
            is_personal=bool(data.get('is_personal', False)),
            template_id=data.get('template_id'),
            created_at=data.get('created_at')
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert Expense to dictionary."""
        return {
            'id': self.id,
            'group_id': self.group_id,
            'amount': str(self.amount),
            'description': self.description,
            'category': self.category,
            'paid_by': self.paid_by,
            'created_by': self.created_by,
            'is_personal': self.is_personal,
            'template_id': self.template_id,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class Budget:
    """
    Spending limit a user sets on one category for a daily, weekly or
    monthly period. `spent` is filled in when budgets are listed.
    """

    def __init__(self, id: int = None, user_id: int = None, category: str = "",
                 amount: Decimal = Decimal('0'), period: str = 'monthly',
                 spent: Decimal = Decimal('0')):
        self.id = id
        self.user_id = user_id
        self.category = category
        self.amount = amount
        self.period = period
        self.spent = spent

    @property
    def percentage(self) -> Decimal:
        if self.amount <= 0:
            return Decimal('0')
        return self.spent * 100 / self.amount

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Budget':
        """Create Budget instance from a database row."""
        return cls(
            id=data.get('id'),
            user_id=data.get('user_id'),
            category=data.get('category', ''),
            amount=_to_decimal(data.get('amount')),
            period=data.get('period') or 'monthly',
            spent=_to_decimal(data.get('spent')),
        )
