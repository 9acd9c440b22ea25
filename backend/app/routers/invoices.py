"""Router exposing invoice operations."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..services import InvoiceNotFoundError, InvoiceService, InvoiceServiceError

router = APIRouter()


def _get_invoice_or_404(db: Session, invoice_id: str) -> models.Invoice:
    invoice = InvoiceService.get_invoice(db, invoice_id)
    if invoice is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


@router.get("/", response_model=schemas.InvoiceListResponse)
def list_invoices(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0, description="Number of invoices to skip"),
    limit: int = Query(50, ge=1, le=200, description="Maximum number of invoices to return"),
    tenant_id: Optional[str] = Query(None, description="Filter by tenant"),
    room_id: Optional[str] = Query(None, description="Filter by room"),
    status_filter: Optional[models.InvoiceStatus] = Query(
        None, alias="status", description="Filter by invoice status"
    ),
    issued_from: Optional[date] = Query(None, description="Return invoices issued on or after this date"),
    issued_to: Optional[date] = Query(None, description="Return invoices issued on or before this date"),
) -> schemas.InvoiceListResponse:
    """Return invoices with pagination and filtering."""

    if issued_from and issued_to and issued_from > issued_to:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="issued_from cannot be after issued_to",
        )

    items, total = InvoiceService.list_invoices(
        db,
        skip=skip,
        limit=limit,
        tenant_id=tenant_id,
        room_id=room_id,
        status=status_filter,
        issued_from=issued_from,
        issued_to=issued_to,
    )
    return schemas.InvoiceListResponse(items=items, total=total, limit=limit, skip=skip)


@router.get("/{invoice_id}", response_model=schemas.InvoiceDetail)
def get_invoice(invoice_id: str, db: Session = Depends(get_db)) -> schemas.InvoiceDetail:
    return _get_invoice_or_404(db, invoice_id)


@router.post("/", response_model=schemas.InvoiceRead, status_code=status.HTTP_201_CREATED)
def create_invoice(
    invoice_in: schemas.InvoiceCreate, db: Session = Depends(get_db)
) -> schemas.InvoiceRead:
    try:
        return InvoiceService.create_invoice(db, invoice_in)
    except InvoiceNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvoiceServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.put("/{invoice_id}", response_model=schemas.InvoiceRead)
def update_invoice(
    invoice_id: str,
    invoice_in: schemas.InvoiceUpdate,
    db: Session = Depends(get_db),
) -> schemas.InvoiceRead:
    invoice = _get_invoice_or_404(db, invoice_id)
    try:
        return InvoiceService.update_invoice(db, invoice, invoice_in)
    except InvoiceServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.delete("/{invoice_id}", response_model=schemas.InvoiceRead)
def void_invoice(
    invoice_id: str,
    db: Session = Depends(get_db),
    updated_by: Optional[str] = Query(None, description="User voiding the invoice"),
) -> schemas.InvoiceRead:
    invoice = _get_invoice_or_404(db, invoice_id)
    try:
        return InvoiceService.void_invoice(db, invoice, updated_by=updated_by)
    except InvoiceServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
