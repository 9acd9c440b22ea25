"""Router exposing payment transactions."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..services import TransactionNotFoundError, TransactionService, TransactionServiceError

router = APIRouter()


@router.get("/", response_model=schemas.TransactionListResponse)
def list_transactions(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0, description="Number of transactions to skip"),
    limit: int = Query(50, ge=1, le=200, description="Maximum number of transactions to return"),
    invoice_id: Optional[str] = Query(None, description="Filter by invoice"),
    method: Optional[models.PaymentMethod] = Query(None, description="Filter by payment method"),
    start_date: Optional[date] = Query(None, description="Return payments on or after this date"),
    end_date: Optional[date] = Query(None, description="Return payments on or before this date"),
) -> schemas.TransactionListResponse:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date cannot be after end_date",
        )

    items, total = TransactionService.list_transactions(
        db,
        skip=skip,
        limit=limit,
        invoice_id=invoice_id,
        method=method,
        start_date=start_date,
        end_date=end_date,
    )
    return schemas.TransactionListResponse(items=items, total=total, limit=limit, skip=skip)


@router.get("/{transaction_id}", response_model=schemas.TransactionRead)
def get_transaction(transaction_id: str, db: Session = Depends(get_db)) -> schemas.TransactionRead:
    transaction = TransactionService.get_transaction(db, transaction_id)
    if transaction is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return transaction


@router.post("/", response_model=schemas.TransactionRead, status_code=status.HTTP_201_CREATED)
def record_payment(
    transaction_in: schemas.TransactionCreate, db: Session = Depends(get_db)
) -> schemas.TransactionRead:
    try:
        return TransactionService.record_payment(db, transaction_in)
    except TransactionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except TransactionServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
