"""Invoices and the charge lines they are made of."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_id


class InvoiceStatus(str, enum.Enum):
    """Lifecycle status of an invoice."""

    DRAFT = "Draft"
    ISSUED = "Issued"
    UNPAID = "Unpaid"
    PARTIALLY_PAID = "PartiallyPaid"
    PAID = "Paid"
    VOID = "Void"
    CANCELLED = "Cancelled"


INVOICE_STATUS_ENUM = SAEnum(
    InvoiceStatus,
    name="invoice_status_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class ChargeType(str, enum.Enum):
    """Direction of a charge line."""

    DEBIT = "debit"
    CREDIT = "credit"


CHARGE_TYPE_ENUM = SAEnum(
    ChargeType,
    name="charge_type_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class Invoice(Base):
    """A bill covering one period for a tenant, or a standalone bill."""

    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint("period_end >= period_start", name="ck_invoices_valid_period"),
        CheckConstraint("total_amount_due >= 0", name="ck_invoices_amount_due_non_negative"),
        CheckConstraint(
            "total_amount_paid >= 0", name="ck_invoices_amount_paid_non_negative"
        ),
    )

    id = Column("invoice_id", GUID(), primary_key=True, default=new_id)
    tenant_id = Column(
        GUID(),
        ForeignKey("tenants.tenant_id", ondelete="SET NULL"),
        nullable=True,
    )
    room_id = Column(
        GUID(),
        ForeignKey("rooms.room_id", ondelete="SET NULL"),
        nullable=True,
    )
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    banish_date = Column(Date, nullable=True)
    total_amount_due = Column(Numeric(14, 2), nullable=False, default=0)
    total_amount_paid = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(INVOICE_STATUS_ENUM, nullable=False, default=InvoiceStatus.ISSUED)
    description = Column(Text, nullable=True)
    payment_proof_path = Column(String, nullable=True)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    tenant = relationship("Tenant", back_populates="invoices")
    room = relationship("Room", back_populates="invoices")
    charges = relationship(
        "Charge",
        back_populates="invoice",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Charge.position",
    )
    transactions = relationship(
        "Transaction",
        back_populates="invoice",
        order_by="Transaction.transaction_date.desc()",
    )


class Charge(Base):
    """Immutable line item belonging to exactly one invoice."""

    __tablename__ = "charges"
    __table_args__ = (CheckConstraint("amount >= 0", name="ck_charges_amount_non_negative"),)

    id = Column("charge_id", GUID(), primary_key=True, default=new_id)
    invoice_id = Column(
        GUID(),
        ForeignKey("invoices.invoice_id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(150), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(Text, nullable=True)
    transaction_type = Column(CHARGE_TYPE_ENUM, nullable=False, default=ChargeType.DEBIT)
    # Order of the line on the invoice, starting at 0.
    position = Column(Integer, nullable=False, default=0)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    invoice = relationship("Invoice", back_populates="charges")


Index("invoices_tenant_period_end_idx", Invoice.tenant_id, Invoice.period_end)
Index("invoices_issue_date_idx", Invoice.issue_date)
# At most one live invoice per tenant and period start.
Index(
    "invoices_tenant_period_start_live_key",
    Invoice.tenant_id,
    Invoice.period_start,
    unique=True,
    sqlite_where=text("status <> 'Void'"),
    postgresql_where=text("status <> 'Void'"),
)
Index("charges_invoice_idx", Charge.invoice_id)
