from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.invoice import InvoiceStatus
from ..models.transaction import PaymentMethod
from .common import Money, PaginatedResponse


class TransactionBase(BaseModel):
    """Shared attributes of a payment received against an invoice."""

    invoice_id: str = Field(..., description="Invoice receiving the payment")
    amount: Money = Field(..., gt=0, description="Amount received")
    transaction_date: date = Field(
        default_factory=date.today, description="Date the payment was received"
    )
    method: PaymentMethod = Field(..., description="Payment method used by the tenant")
    proof_path: Optional[str] = Field(default=None, description="Reference to the payment proof")
    description: Optional[str] = Field(default=None, description="Optional note for the payment")


class TransactionCreate(TransactionBase):
    """Schema used when recording a payment."""

    created_by: Optional[str] = Field(default=None, description="User who captured the payment")


class TransactionInvoiceSummary(BaseModel):
    id: str
    status: InvoiceStatus
    total_amount_due: Decimal
    total_amount_paid: Decimal

    model_config = ConfigDict(from_attributes=True)


class TransactionRead(TransactionBase):
    id: str
    invoice_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    invoice: Optional[TransactionInvoiceSummary] = None

    model_config = ConfigDict(from_attributes=True)


class TransactionListResponse(PaginatedResponse[TransactionRead]):
    """Paginated transaction listing."""

    pass
