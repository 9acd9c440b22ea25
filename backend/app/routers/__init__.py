"""Routers package."""

from .billing import router as billing_router
from .expenses import router as expenses_router
from .invoices import router as invoices_router
from .transactions import router as transactions_router

__all__ = [
    "billing_router",
    "expenses_router",
    "invoices_router",
    "transactions_router",
]
