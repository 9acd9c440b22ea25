"""Recording and querying operating expenses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from .. import models, schemas

LOGGER = logging.getLogger(__name__)


class ExpenseServiceError(RuntimeError):
    """Raised when an expense request is invalid."""


class ExpenseNotFoundError(ExpenseServiceError):
    """Raised when an expense or the boarding house it references does not exist."""


@dataclass(frozen=True)
class ExpenseFilters:
    boarding_house_id: Optional[str] = None
    category: Optional[str] = None
    payment_method: Optional[models.PaymentMethod] = None
    search: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None

    def validate(self) -> None:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ExpenseServiceError("start_date cannot be after end_date")
        if (
            self.min_amount is not None
            and self.max_amount is not None
            and self.min_amount > self.max_amount
        ):
            raise ExpenseServiceError("min_amount cannot be greater than max_amount")

    def apply(self, query: Query) -> Query:
        expense = models.Expense
        if self.boarding_house_id:
            query = query.filter(expense.boarding_house_id == self.boarding_house_id)
        if self.category:
            query = query.filter(func.lower(expense.category) == self.category.strip().lower())
        if self.payment_method is not None:
            query = query.filter(expense.payment_method == self.payment_method)
        if self.search:
            query = query.filter(expense.name.ilike(f"%{self.search.strip()}%"))
        if self.start_date:
            query = query.filter(expense.expense_date >= self.start_date)
        if self.end_date:
            query = query.filter(expense.expense_date <= self.end_date)
        if self.min_amount is not None:
            query = query.filter(expense.amount >= self.min_amount)
        if self.max_amount is not None:
            query = query.filter(expense.amount <= self.max_amount)
        return query


class ExpenseService:
    @staticmethod
    def list_expenses(
        db: Session,
        filters: ExpenseFilters,
        *,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[models.Expense], int, Decimal]:
        """Return one page of matching expenses with the match count and amount sum."""

        filters.validate()
        count, amount = filters.apply(
            db.query(func.count(models.Expense.id), func.coalesce(func.sum(models.Expense.amount), 0))
        ).one()
        items = (
            filters.apply(db.query(models.Expense))
            .order_by(models.Expense.expense_date.desc(), models.Expense.created_at.desc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, count, Decimal(amount)

    @staticmethod
    def get_expense(db: Session, expense_id: str) -> models.Expense:
        expense = db.get(models.Expense, expense_id)
        if expense is None:
            raise ExpenseNotFoundError("Expense not found")
        return expense

    @staticmethod
    def record_expense(db: Session, data: schemas.ExpenseCreate) -> models.Expense:
        if data.boarding_house_id and db.get(models.BoardingHouse, data.boarding_house_id) is None:
            raise ExpenseNotFoundError("Boarding house not found")

        expense = models.Expense(**data.model_dump(), updated_by=data.created_by)
        db.add(expense)
        db.commit()
        db.refresh(expense)
        LOGGER.info("Recorded expense %s of %s", expense.id, expense.amount)
        return expense

    @staticmethod
    def delete_expense(db: Session, expense_id: str) -> None:
        expense = ExpenseService.get_expense(db, expense_id)
        db.delete(expense)
        db.commit()
        LOGGER.info("Deleted expense %s", expense_id)
