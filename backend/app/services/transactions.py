"""Business logic for recording payments against invoices."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from .invoices import SYSTEM_ACTOR

LOGGER = logging.getLogger(__name__)

CLOSED_STATUSES = (models.InvoiceStatus.PAID, models.InvoiceStatus.VOID)


class TransactionServiceError(RuntimeError):
    """Raised when a payment cannot be recorded."""


class TransactionNotFoundError(TransactionServiceError):
    """Raised when the referenced invoice or transaction does not exist."""


def resolve_invoice_status(
    amount_due: Decimal, amount_paid: Decimal, current: models.InvoiceStatus
) -> models.InvoiceStatus:
    """Return the status an invoice takes after a payment."""

    if amount_paid >= amount_due:
        return models.InvoiceStatus.PAID
    if amount_paid > 0:
        return models.InvoiceStatus.PARTIALLY_PAID
    if current in (models.InvoiceStatus.ISSUED, models.InvoiceStatus.DRAFT):
        return current
    return models.InvoiceStatus.UNPAID


class TransactionService:
    """Operations for reading and recording payment transactions."""

    @staticmethod
    def list_transactions(
        db: Session,
        *,
        skip: int = 0,
        limit: int = 100,
        invoice_id: Optional[str] = None,
        method: Optional[models.PaymentMethod] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Tuple[Iterable[models.Transaction], int]:
        query = db.query(models.Transaction).options(selectinload(models.Transaction.invoice))

        if invoice_id:
            query = query.filter(models.Transaction.invoice_id == invoice_id)
        if method:
            query = query.filter(models.Transaction.method == method)
        if start_date:
            query = query.filter(models.Transaction.transaction_date >= start_date)
        if end_date:
            query = query.filter(models.Transaction.transaction_date <= end_date)

        total = query.count()
        items = (
            query.order_by(
                models.Transaction.transaction_date.desc(),
                models.Transaction.created_at.desc(),
            )
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_transaction(db: Session, transaction_id: str) -> Optional[models.Transaction]:
        return (
            db.query(models.Transaction)
            .options(selectinload(models.Transaction.invoice))
            .filter(models.Transaction.id == transaction_id)
            .first()
        )

    @staticmethod
    def record_payment(db: Session, data: schemas.TransactionCreate) -> models.Transaction:
        """Store a payment and roll its amount into the invoice totals."""

        invoice = db.get(models.Invoice, data.invoice_id)
        if invoice is None:
            raise TransactionNotFoundError("Invoice not found")
        if invoice.status in CLOSED_STATUSES:
            raise TransactionServiceError(
                f"Cannot record payment for an invoice with status '{invoice.status.value}'."
            )

        actor = data.created_by or SYSTEM_ACTOR
        try:
            with db.begin_nested():
                transaction = models.Transaction(
                    invoice_id=invoice.id,
                    amount=data.amount,
                    transaction_date=data.transaction_date,
                    method=data.method,
                    proof_path=data.proof_path,
                    description=data.description,
                    created_by=actor,
                    updated_by=actor,
                )
                db.add(transaction)

                amount_paid = Decimal(invoice.total_amount_paid or 0) + Decimal(data.amount)
                invoice.total_amount_paid = amount_paid
                invoice.status = resolve_invoice_status(
                    Decimal(invoice.total_amount_due or 0), amount_paid, invoice.status
                )
                invoice.updated_by = actor
                db.add(invoice)

                if invoice.room is not None:
                    invoice.room.room_status = models.RoomStatus.OCCUPIED
                    invoice.room.updated_by = actor
                    db.add(invoice.room)
                db.flush()
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        db.refresh(transaction)
        LOGGER.info(
            "Payment %s of %s recorded for invoice %s (status %s)",
            transaction.id,
            transaction.amount,
            invoice.id,
            invoice.status.value,
        )
        return transaction
