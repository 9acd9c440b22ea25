from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.invoice import ChargeType, InvoiceStatus
from ..models.transaction import PaymentMethod
from .common import Money, PaginatedResponse


class ChargeBase(BaseModel):
    """A single line item on an invoice."""

    name: str = Field(..., min_length=1, max_length=150, description="Charge label")
    amount: Money = Field(..., ge=0, description="Charge amount")
    description: Optional[str] = Field(default=None, description="Optional details")
    transaction_type: ChargeType = Field(
        default=ChargeType.DEBIT, description="Whether the line is a debit or a credit"
    )


class ChargeCreate(ChargeBase):
    """Schema used when adding a charge to a new invoice."""

    pass


class ChargeRead(ChargeBase):
    id: str
    invoice_id: str
    position: int = 0
    created_by: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceTransactionRead(BaseModel):
    """Compact view of a payment shown inside an invoice."""

    id: str
    amount: Decimal
    transaction_date: date
    method: PaymentMethod

    model_config = ConfigDict(from_attributes=True)


class InvoiceBase(BaseModel):
    tenant_id: Optional[str] = Field(default=None, description="Tenant being billed")
    room_id: Optional[str] = Field(default=None, description="Room the invoice relates to")
    period_start: date = Field(..., description="First day covered by the invoice")
    period_end: date = Field(..., description="Last day covered by the invoice")
    issue_date: date = Field(..., description="Date the invoice is issued")
    due_date: date = Field(..., description="Date payment is expected")
    banish_date: Optional[date] = Field(
        default=None, description="Date the tenant must leave if the invoice stays unpaid"
    )
    description: Optional[str] = Field(default=None, description="Free text description")

    @model_validator(mode="after")
    def validate_period(self):
        if self.period_end < self.period_start:
            raise ValueError("period_end cannot be before period_start")
        return self


class InvoiceCreate(InvoiceBase):
    """Schema used to issue an invoice manually."""

    charges: List[ChargeCreate] = Field(..., min_length=1, description="Invoice line items")
    created_by: Optional[str] = Field(default=None, description="User issuing the invoice")


class InvoiceUpdate(BaseModel):
    """Fields of an invoice that may change after issuance."""

    period_start: Optional[date] = None
    period_end: Optional[date] = None
    due_date: Optional[date] = None
    total_amount_paid: Optional[Money] = Field(default=None, ge=0)
    status: Optional[InvoiceStatus] = None
    description: Optional[str] = None
    updated_by: Optional[str] = None


class InvoiceRead(InvoiceBase):
    id: str
    total_amount_due: Decimal
    total_amount_paid: Decimal
    status: InvoiceStatus
    payment_proof_path: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    charges: List[ChargeRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class InvoiceDetail(InvoiceRead):
    transactions: List[InvoiceTransactionRead] = Field(default_factory=list)


class InvoiceListResponse(PaginatedResponse[InvoiceRead]):
    """Paginated invoice listing."""
