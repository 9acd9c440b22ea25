"""Business logic for invoices and their charge lines."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas

LOGGER = logging.getLogger(__name__)

SYSTEM_ACTOR = "System"

UPDATABLE_FIELDS = (
    "period_start",
    "period_end",
    "due_date",
    "total_amount_paid",
    "status",
    "description",
    "updated_by",
)

LIVE_STATUS_EXCLUSIONS = (models.InvoiceStatus.VOID,)


class InvoiceServiceError(RuntimeError):
    """Raised when an invoice operation violates a business rule."""


class InvoiceNotFoundError(InvoiceServiceError):
    """Raised when a referenced invoice, tenant or room does not exist."""


@dataclass(frozen=True)
class ChargeDraft:
    """A charge line that has not been persisted yet."""

    name: str
    amount: Decimal
    description: Optional[str] = None
    transaction_type: models.ChargeType = models.ChargeType.DEBIT


def sum_charges(charges: Iterable[ChargeDraft]) -> Decimal:
    return sum((Decimal(charge.amount) for charge in charges), Decimal("0"))


def find_live_invoice(
    db: Session, tenant_id: str, period_start: date
) -> Optional[models.Invoice]:
    """Return the non-void invoice already covering ``period_start`` for a tenant."""

    return (
        db.query(models.Invoice)
        .filter(models.Invoice.tenant_id == tenant_id)
        .filter(models.Invoice.period_start == period_start)
        .filter(models.Invoice.status.notin_(LIVE_STATUS_EXCLUSIONS))
        .first()
    )


def persist_invoice(
    db: Session,
    *,
    charges: Sequence[ChargeDraft],
    actor: str,
    status: models.InvoiceStatus = models.InvoiceStatus.ISSUED,
    **header,
) -> models.Invoice:
    """Create an invoice header and its charges as one unit of work.

    The header is inserted with a zero total, the charges are bulk inserted
    against it and the total is then set to their exact sum. Everything runs
    inside a SAVEPOINT so a failure at any step leaves no trace of the
    invoice; the surrounding session stays usable.
    """

    with db.begin_nested():
        invoice = models.Invoice(
            **header,
            status=status,
            total_amount_due=Decimal("0"),
            total_amount_paid=Decimal("0"),
            created_by=actor,
            updated_by=actor,
        )
        db.add(invoice)
        db.flush()

        db.add_all(
            [
                models.Charge(
                    invoice_id=invoice.id,
                    name=charge.name,
                    amount=charge.amount,
                    description=charge.description,
                    transaction_type=charge.transaction_type,
                    position=position,
                    created_by=actor,
                    updated_by=actor,
                )
                for position, charge in enumerate(charges)
            ]
        )
        db.flush()

        invoice.total_amount_due = sum_charges(charges)
        db.flush()

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(invoice)
    return invoice


class InvoiceService:
    """Read and maintain invoices outside of the automated billing pass."""

    @staticmethod
    def list_invoices(
        db: Session,
        *,
        skip: int = 0,
        limit: int = 100,
        tenant_id: Optional[str] = None,
        room_id: Optional[str] = None,
        status: Optional[models.InvoiceStatus] = None,
        issued_from: Optional[date] = None,
        issued_to: Optional[date] = None,
    ) -> Tuple[Iterable[models.Invoice], int]:
        query = db.query(models.Invoice).options(selectinload(models.Invoice.charges))

        if tenant_id:
            query = query.filter(models.Invoice.tenant_id == tenant_id)
        if room_id:
            query = query.filter(models.Invoice.room_id == room_id)
        if status:
            query = query.filter(models.Invoice.status == status)
        if issued_from:
            query = query.filter(models.Invoice.issue_date >= issued_from)
        if issued_to:
            query = query.filter(models.Invoice.issue_date <= issued_to)

        total = query.count()
        items = (
            query.order_by(models.Invoice.issue_date.desc(), models.Invoice.period_end.desc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_invoice(db: Session, invoice_id: str) -> Optional[models.Invoice]:
        return (
            db.query(models.Invoice)
            .options(
                selectinload(models.Invoice.charges),
                selectinload(models.Invoice.transactions),
            )
            .filter(models.Invoice.id == invoice_id)
            .first()
        )

    @staticmethod
    def create_invoice(db: Session, data: schemas.InvoiceCreate) -> models.Invoice:
        if data.period_end < data.period_start:
            raise InvoiceServiceError("period_end cannot be before period_start")

        if data.tenant_id and db.get(models.Tenant, data.tenant_id) is None:
            raise InvoiceNotFoundError("Provided tenant not found")
        if data.room_id and db.get(models.Room, data.room_id) is None:
            raise InvoiceNotFoundError("Provided room not found")
        if data.tenant_id and find_live_invoice(db, data.tenant_id, data.period_start):
            raise InvoiceServiceError(
                "The tenant already has an invoice starting on "
                f"{data.period_start.isoformat()}"
            )

        charges = [
            ChargeDraft(
                name=item.name,
                amount=item.amount,
                description=item.description,
                transaction_type=item.transaction_type,
            )
            for item in data.charges
        ]
        actor = data.created_by or SYSTEM_ACTOR
        invoice = persist_invoice(
            db,
            charges=charges,
            actor=actor,
            tenant_id=data.tenant_id,
            room_id=data.room_id,
            period_start=data.period_start,
            period_end=data.period_end,
            issue_date=data.issue_date,
            due_date=data.due_date,
            banish_date=data.banish_date,
            description=data.description,
        )
        LOGGER.info(
            "Invoice %s created manually by %s with %s charges", invoice.id, actor, len(charges)
        )
        return invoice

    @staticmethod
    def update_invoice(
        db: Session, invoice: models.Invoice, data: schemas.InvoiceUpdate
    ) -> models.Invoice:
        changes = data.model_dump(exclude_unset=True, include=set(UPDATABLE_FIELDS))
        if not changes:
            return invoice

        new_status = changes.get("status")
        if (
            new_status is not None
            and invoice.status == models.InvoiceStatus.PAID
            and new_status != models.InvoiceStatus.VOID
        ):
            raise InvoiceServiceError("Cannot change status from Paid except to Void.")

        period_start = changes.get("period_start", invoice.period_start)
        period_end = changes.get("period_end", invoice.period_end)
        if period_end < period_start:
            raise InvoiceServiceError("period_end cannot be before period_start")

        resulting_status = changes.get("status", invoice.status)
        if invoice.tenant_id and resulting_status not in LIVE_STATUS_EXCLUSIONS:
            existing = find_live_invoice(db, invoice.tenant_id, period_start)
            if existing is not None and existing.id != invoice.id:
                raise InvoiceServiceError(
                    f"Invoice {existing.id} already covers the period starting "
                    f"{period_start.isoformat()} for this tenant."
                )

        for field, value in changes.items():
            setattr(invoice, field, value)
        db.add(invoice)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        db.refresh(invoice)
        return invoice

    @staticmethod
    def void_invoice(
        db: Session, invoice: models.Invoice, *, updated_by: Optional[str] = None
    ) -> models.Invoice:
        if invoice.status in (models.InvoiceStatus.PAID, models.InvoiceStatus.PARTIALLY_PAID):
            raise InvoiceServiceError(
                f"Cannot void an invoice with status '{invoice.status.value}'."
            )
        invoice.status = models.InvoiceStatus.VOID
        invoice.updated_by = updated_by or SYSTEM_ACTOR
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        LOGGER.info("Invoice %s voided by %s", invoice.id, invoice.updated_by)
        return invoice
