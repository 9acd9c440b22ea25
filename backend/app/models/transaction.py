"""SQLAlchemy model definitions for payment transactions."""

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
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_id


class PaymentMethod(str, enum.Enum):
    """Supported payment methods."""

    CASH = "Cash"
    BANK_TRANSFER = "Bank Transfer"
    ONLINE_PAYMENT = "Online Payment"
    OTHER = "Other"


PAYMENT_METHOD_ENUM = SAEnum(
    PaymentMethod,
    name="payment_method_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class Transaction(Base):
    """A payment received against an invoice."""

    __tablename__ = "transactions"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),)

    id = Column("transaction_id", GUID(), primary_key=True, default=new_id)
    invoice_id = Column(
        GUID(),
        ForeignKey("invoices.invoice_id", ondelete="SET NULL"),
        nullable=True,
    )
    amount = Column(Numeric(14, 2), nullable=False)
    transaction_date = Column(Date, nullable=False)
    method = Column(PAYMENT_METHOD_ENUM, nullable=False)
    proof_path = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    invoice = relationship("Invoice", back_populates="transactions")


Index("transactions_invoice_idx", Transaction.invoice_id)
Index("transactions_date_idx", Transaction.transaction_date)
