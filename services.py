from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from functools import wraps
from typing import Optional

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.orm import Session, joinedload

from aggregation import build_dashboard_stats
from database import StorageUnavailable, storage_guard  # noqa: F401
from models import Category, Transaction, TransactionType, utcnow
from periods import Period, local_today
from schemas import CategoryIn, DashboardStats, TransactionIn, TransactionOut


logger = logging.getLogger(__name__)

TRANSACTION_NOT_FOUND = "Transaction not found or access denied."


class NotFoundOrForbidden(ValueError):
    pass


class InvalidReference(ValueError):
    pass


class CategoryTypeMismatch(InvalidReference):
    pass


# Stable ids: other rows and clients reference these directly.
DEFAULT_CATEGORIES: tuple[tuple[int, str, TransactionType, str], ...] = (
    (1, "Salary", TransactionType.income, "💰"),
    (2, "Freelance", TransactionType.income, "💼"),
    (3, "Investments", TransactionType.income, "📈"),
    (4, "Food & Dining", TransactionType.expense, "🍔"),
    (5, "Rent", TransactionType.expense, "🏠"),
    (6, "Utilities", TransactionType.expense, "💡"),
    (7, "Transportation", TransactionType.expense, "🚗"),
    (8, "Entertainment", TransactionType.expense, "🎮"),
    (9, "Healthcare", TransactionType.expense, "🏥"),
    (10, "Shopping", TransactionType.expense, "🛍️"),
)


def _guarded(method):
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with storage_guard(self.session):
            return method(self, *args, **kwargs)

    return wrapper


def seed_default_categories(session: Session) -> int:
    """Insert any missing global category and refresh the labels of the rest.

    Safe to run on every startup. Returns the number of rows inserted.
    """
    inserted = 0
    with storage_guard(session):
        for category_id, name, txn_type, icon in DEFAULT_CATEGORIES:
            existing = session.get(Category, category_id)
            if existing is None:
                session.add(
                    Category(
                        id=category_id,
                        user_id=None,
                        name=name,
                        type=txn_type,
                        icon=icon,
                    )
                )
                inserted += 1
                continue
            if existing.user_id is not None or existing.type != txn_type:
                raise ValueError(
                    f"Category id {category_id} is taken by an incompatible row"
                )
            existing.name = name
            existing.icon = icon
        session.commit()
    logger.info(f"categories_seeded: inserted={inserted}")
    return inserted


@dataclass
class TransactionFilters:
    type: Optional[TransactionType] = None
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def for_period(
        cls, period: Period, type: Optional[TransactionType] = None
    ) -> "TransactionFilters":
        return cls(type=type, start=period.start, end=period.end)


class CategoryService:
    def __init__(self, session: Session, user_id: Optional[str] = None) -> None:
        self.session = session
        self.user_id = user_id

    def _visible(self):
        if self.user_id is None:
            return Category.user_id.is_(None)
        return or_(Category.user_id.is_(None), Category.user_id == self.user_id)

    @_guarded
    def list_by_type(self, transaction_type: TransactionType) -> list[Category]:
        stmt = (
            select(Category)
            .where(self._visible(), Category.type == transaction_type)
            .order_by(Category.name, Category.id)
        )
        return self.session.scalars(stmt).all()

    @_guarded
    def list_all(self) -> list[Category]:
        income_first = case((Category.type == TransactionType.income, 0), else_=1)
        stmt = (
            select(Category)
            .where(self._visible())
            .order_by(income_first, Category.name, Category.id)
        )
        return self.session.scalars(stmt).all()

    @_guarded
    def get_visible(self, category_id: int) -> Category:
        category = self.session.get(Category, category_id)
        if category is None or not (
            category.is_global or category.user_id == self.user_id
        ):
            raise InvalidReference("Category not found")
        return category

    @_guarded
    def create(self, data: CategoryIn) -> Category:
        if self.user_id is None:
            raise ValueError("Global categories are seeded, not created")
        clean_name = data.name.strip()
        if not clean_name:
            raise ValueError("Category name cannot be empty")
        existing = self.session.scalar(
            select(Category).where(
                Category.user_id == self.user_id,
                Category.type == data.type,
                func.lower(Category.name) == clean_name.lower(),
            )
        )
        if existing:
            raise ValueError("Category with this name already exists")
        category = Category(
            user_id=self.user_id,
            name=clean_name,
            type=data.type,
            icon=data.icon,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        logger.info(f"category_created: id={category.id} user={self.user_id}")
        return category


class TransactionService:
    def __init__(self, session: Session, user_id: str) -> None:
        if not user_id:
            raise ValueError("An owning user is required")
        self.session = session
        self.user_id = user_id
        self.categories = CategoryService(session, user_id)

    def _owned(self):
        return (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(Transaction.user_id == self.user_id)
        )

    def _check_category(self, data: TransactionIn) -> Category:
        category = self.categories.get_visible(data.category_id)
        if category.type != data.type:
            raise CategoryTypeMismatch("Category type mismatch")
        return category

    def _denied(self, action: str, transaction_id: int) -> NotFoundOrForbidden:
        logger.info(
            f"transaction_{action}_denied: id={transaction_id} user={self.user_id}"
        )
        return NotFoundOrForbidden(TRANSACTION_NOT_FOUND)

    @_guarded
    def list(self, filters: Optional[TransactionFilters] = None) -> list[Transaction]:
        filters = filters or TransactionFilters()
        stmt = self._owned().order_by(
            Transaction.date.desc(),
            Transaction.created_at.desc(),
            Transaction.id.desc(),
        )
        if filters.type:
            stmt = stmt.where(Transaction.type == filters.type)
        if filters.start:
            stmt = stmt.where(Transaction.date >= filters.start)
        if filters.end:
            stmt = stmt.where(Transaction.date <= filters.end)
        return self.session.scalars(stmt).all()

    @_guarded
    def get(self, transaction_id: int) -> Transaction:
        stmt = self._owned().where(Transaction.id == transaction_id)
        txn = self.session.scalar(stmt.execution_options(populate_existing=True))
        if txn is None:
            raise self._denied("lookup", transaction_id)
        return txn

    @_guarded
    def create(self, data: TransactionIn) -> Transaction:
        self._check_category(data)
        txn = Transaction(
            user_id=self.user_id,
            date=data.date,
            type=data.type,
            amount=data.amount,
            category_id=data.category_id,
            description=data.description,
            created_at=utcnow(),
        )
        self.session.add(txn)
        self.session.commit()
        logger.info(f"transaction_created: id={txn.id} user={self.user_id}")
        return self.get(txn.id)

    @_guarded
    def update(self, transaction_id: int, data: TransactionIn) -> Transaction:
        # One conditional UPDATE: a row deleted concurrently simply matches
        # nothing and surfaces as not-found.
        self._check_category(data)
        result = self.session.execute(
            update(Transaction)
            .where(
                Transaction.id == transaction_id,
                Transaction.user_id == self.user_id,
            )
            .values(
                amount=data.amount,
                type=data.type,
                category_id=data.category_id,
                date=data.date,
                description=data.description,
            )
        )
        if result.rowcount == 0:
            self.session.rollback()
            raise self._denied("update", transaction_id)
        self.session.commit()
        logger.info(f"transaction_updated: id={transaction_id} user={self.user_id}")
        return self.get(transaction_id)

    @_guarded
    def delete(self, transaction_id: int) -> None:
        result = self.session.execute(
            delete(Transaction).where(
                Transaction.id == transaction_id,
                Transaction.user_id == self.user_id,
            )
        )
        if result.rowcount == 0:
            self.session.rollback()
            raise self._denied("delete", transaction_id)
        self.session.commit()
        logger.info(f"transaction_deleted: id={transaction_id} user={self.user_id}")


class MetricsService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    @_guarded
    def snapshot(self) -> list[TransactionOut]:
        """Every transaction of the user, newest first, detached from the session."""
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(Transaction.user_id == self.user_id)
            .order_by(
                Transaction.date.desc(),
                Transaction.created_at.desc(),
                Transaction.id.desc(),
            )
            .execution_options(populate_existing=True)
        )
        return [
            TransactionOut.model_validate(txn)
            for txn in self.session.scalars(stmt).all()
        ]

    def dashboard_stats(self, today: Optional[date] = None) -> DashboardStats:
        snapshot = self.snapshot()
        today = today or local_today()
        stats = build_dashboard_stats(snapshot, today)
        logger.debug(
            f"dashboard_stats: user={self.user_id} today={today.isoformat()} "
            f"transactions={len(snapshot)}"
        )
        return stats
