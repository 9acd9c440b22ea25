"""Router exposing expense operations."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..services import ExpenseFilters, ExpenseNotFoundError, ExpenseService, ExpenseServiceError

router = APIRouter()


def _to_http_error(exc: ExpenseServiceError) -> HTTPException:
    code = (
        status.HTTP_404_NOT_FOUND
        if isinstance(exc, ExpenseNotFoundError)
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=code, detail=str(exc))


@router.get("/", response_model=schemas.ExpenseListResponse)
def list_expenses(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    boarding_house_id: Optional[str] = Query(None, description="Filter by boarding house"),
    category: Optional[str] = Query(None, description="Case-insensitive category match"),
    payment_method: Optional[models.PaymentMethod] = Query(None),
    search: Optional[str] = Query(None, description="Substring of the expense name"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
) -> schemas.ExpenseListResponse:
    filters = ExpenseFilters(
        boarding_house_id=boarding_house_id,
        category=category,
        payment_method=payment_method,
        search=search,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
    )
    try:
        items, total, total_amount = ExpenseService.list_expenses(db, filters, skip=skip, limit=limit)
    except ExpenseServiceError as exc:
        raise _to_http_error(exc) from exc
    return schemas.ExpenseListResponse(
        items=items, total=total, limit=limit, skip=skip, total_amount=total_amount
    )


@router.get("/{expense_id}", response_model=schemas.ExpenseRead)
def get_expense(expense_id: str, db: Session = Depends(get_db)) -> schemas.ExpenseRead:
    try:
        return ExpenseService.get_expense(db, expense_id)
    except ExpenseServiceError as exc:
        raise _to_http_error(exc) from exc


@router.post("/", response_model=schemas.ExpenseRead, status_code=status.HTTP_201_CREATED)
def create_expense(expense_in: schemas.ExpenseCreate, db: Session = Depends(get_db)) -> schemas.ExpenseRead:
    try:
        return ExpenseService.record_expense(db, expense_in)
    except ExpenseServiceError as exc:
        raise _to_http_error(exc) from exc


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(expense_id: str, db: Session = Depends(get_db)) -> None:
    try:
        ExpenseService.delete_expense(db, expense_id)
    except ExpenseServiceError as exc:
        raise _to_http_error(exc) from exc
