from __future__ import annotations

import calendar
import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, joinedload

from database import Base
from models import DEFAULT_CATEGORY_ICON, Category, Transaction, TransactionType
from schemas import CategoryIn, TransactionIn

logger = logging.getLogger(__name__)

TREND_MONTHS = 6

DEFAULT_CATEGORIES: list[tuple[str, TransactionType, str]] = [
    ("Salary", TransactionType.income, "💰"),
    ("Freelance", TransactionType.income, "💻"),
    ("Investment", TransactionType.income, "📈"),
    ("Other Income", TransactionType.income, "💵"),
    ("Food", TransactionType.expense, "🍔"),
    ("Transport", TransactionType.expense, "🚗"),
    ("Utilities", TransactionType.expense, "💡"),
    ("Entertainment", TransactionType.expense, "🎬"),
    ("Health", TransactionType.expense, "🏥"),
    ("Education", TransactionType.expense, "📚"),
    ("Other Expenses", TransactionType.expense, "📦"),
]


def add_months(d: date, count: int) -> date:
    """Shift ``d`` by ``count`` months, clamping the day to the target month's end."""
    month_index = (d.year * 12) + (d.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_label(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def initialize_database(session: Session) -> int:
    """Create missing tables and seed the default categories into an empty table.

    Returns the number of categories inserted (zero when categories already exist).
    """
    Base.metadata.create_all(session.get_bind())
    existing = session.execute(select(func.count(Category.id))).scalar_one()
    if existing:
        logger.info(f"init_db: categories={existing} seeded=0")
        return 0
    session.add_all(
        [
            Category(name=name, type=txn_type, icon=icon)
            for name, txn_type, icon in DEFAULT_CATEGORIES
        ]
    )
    session.commit()
    logger.info(f"init_db: seeded={len(DEFAULT_CATEGORIES)}")
    return len(DEFAULT_CATEGORIES)


class CategoryService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Category]:
        stmt = select(Category).order_by(Category.type, Category.name)
        return list(self.session.scalars(stmt).all())

    def create(self, data: CategoryIn) -> Category:
        category = Category(
            name=data.name,
            type=data.type,
            icon=data.icon or DEFAULT_CATEGORY_ICON,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category


class TransactionService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .order_by(Transaction.date.desc(), Transaction.id.desc())
        )
        return list(self.session.scalars(stmt).all())

    def get(self, transaction_id: int) -> Transaction:
        txn = self.session.get(Transaction, transaction_id)
        if not txn:
            raise ValueError("Transaction not found")
        return txn

    def create(self, data: TransactionIn) -> Transaction:
        txn = Transaction(**_transaction_values(data))
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def update(self, transaction_id: int, data: TransactionIn) -> int:
        """Replace every editable field of the row; a missing id updates nothing."""
        result = self.session.execute(
            update(Transaction)
            .where(Transaction.id == transaction_id)
            .values(**_transaction_values(data))
        )
        self.session.commit()
        return result.rowcount

    def delete(self, transaction_id: int) -> int:
        result = self.session.execute(
            delete(Transaction).where(Transaction.id == transaction_id)
        )
        self.session.commit()
        return result.rowcount


def _transaction_values(data: TransactionIn) -> dict[str, object]:
    return {
        "description": data.description,
        "amount": data.amount,
        "category_id": data.category_id,
        "type": data.type,
        "date": data.date,
        "payment_method": data.payment_method or None,
        "notes": data.notes or None,
    }


class DashboardService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _total_for(self, transaction_type: TransactionType) -> Decimal:
        total = self.session.execute(
            select(func.coalesce(func.sum(Transaction.amount), 0)).where(
                Transaction.type == transaction_type
            )
        ).scalar_one()
        return Decimal(str(total or 0))

    def summary(self) -> dict[str, Decimal]:
        income = self._total_for(TransactionType.income)
        expense = self._total_for(TransactionType.expense)
        return {
            "total_income": income,
            "total_expense": expense,
            "balance": income - expense,
        }

    def by_category(self, transaction_type: TransactionType) -> list[dict[str, object]]:
        total = func.sum(Transaction.amount)
        stmt = (
            select(Category.name, Category.icon, total.label("total"))
            .join(Category, Category.id == Transaction.category_id)
            .where(Transaction.type == transaction_type)
            .group_by(Category.id, Category.name, Category.icon)
            .order_by(total.desc())
        )
        return [
            {"name": row.name, "icon": row.icon, "total": Decimal(str(row.total))}
            for row in self.session.execute(stmt)
        ]

    def trend(self, today: Optional[date] = None) -> list[dict[str, object]]:
        today = today or date.today()
        start = add_months(today, -TREND_MONTHS)
        stmt = (
            select(
                Transaction.date,
                Transaction.type,
                func.sum(Transaction.amount).label("total"),
            )
            .where(Transaction.date >= start)
            .group_by(Transaction.date, Transaction.type)
        )

        months: dict[str, dict[str, Decimal]] = {}
        for row in self.session.execute(stmt):
            bucket = months.setdefault(
                month_label(row.date),
                {"income": Decimal("0"), "expense": Decimal("0")},
            )
            bucket[row.type.value] += Decimal(str(row.total or 0))

        labels = sorted(months)
        # A mid-month window start touches seven labels; only the partial start
        # month is dropped. Future-dated rows add labels and are kept.
        if len(labels) > TREND_MONTHS and labels[0] == month_label(start):
            labels = labels[1:]
        return [
            {
                "month": label,
                "income": months[label]["income"],
                "expense": months[label]["expense"],
            }
            for label in labels
        ]
