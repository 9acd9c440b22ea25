"""SQLAlchemy model definitions for operating expenses."""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
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
from .transaction import PAYMENT_METHOD_ENUM


class Expense(Base):
    """Represents an operating expense paid for a boarding house."""

    __tablename__ = "expenses"
    __table_args__ = (CheckConstraint("amount >= 0", name="ck_expenses_amount_non_negative"),)

    id = Column("expense_id", GUID(), primary_key=True, default=new_id)
    boarding_house_id = Column(
        GUID(),
        ForeignKey("boarding_houses.boarding_house_id", ondelete="SET NULL"),
        nullable=True,
    )
    category = Column(String(100), nullable=True)
    name = Column(String(150), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    expense_date = Column(Date, nullable=False)
    payment_method = Column(PAYMENT_METHOD_ENUM, nullable=False)
    proof_path = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    boarding_house = relationship("BoardingHouse", back_populates="expenses")


Index("expenses_boarding_house_date_idx", Expense.boarding_house_id, Expense.expense_date)
