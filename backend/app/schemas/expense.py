from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.transaction import PaymentMethod
from .common import Money, PaginatedResponse


class ExpenseBase(BaseModel):
    boarding_house_id: Optional[str] = Field(
        default=None, description="Identifier of the boarding house the expense belongs to"
    )
    expense_date: date = Field(..., description="Date when the expense occurred")
    category: Optional[str] = Field(default=None, description="Category of the expense")
    name: str = Field(..., min_length=1, max_length=150, description="Short label of the expense")
    description: Optional[str] = Field(default=None, description="Detailed description of the expense")
    amount: Money = Field(..., ge=0, description="Monetary value of the expense")
    payment_method: PaymentMethod = Field(..., description="How the expense was paid")
    proof_path: Optional[str] = Field(default=None, description="Reference to the stored receipt")


class ExpenseCreate(ExpenseBase):
    """Schema used to create new expenses."""

    created_by: Optional[str] = Field(default=None, description="User recording the expense")


class ExpenseRead(ExpenseBase):
    """Schema representing stored expenses."""

    id: str
    created_by: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExpenseListResponse(PaginatedResponse[ExpenseRead]):
    """Paginated expense listing with the sum of every matching expense."""

    total_amount: Decimal = Field(..., description="Sum of amounts across all matching expenses")
