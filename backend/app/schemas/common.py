"""Shared schema definitions."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Generic, Sequence, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

# Matches the Numeric(14, 2) columns used for every stored amount.
Money = Annotated[Decimal, Field(max_digits=14, decimal_places=2)]


class PaginatedResponse(BaseModel, Generic[T]):
    """Envelope returned by every listing endpoint."""

    items: Sequence[T]
    total: int = Field(..., ge=0, description="Number of rows matching the filters")
    limit: int = Field(..., ge=1)
    skip: int = Field(..., ge=0)
