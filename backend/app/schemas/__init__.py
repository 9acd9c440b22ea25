"""Expose Pydantic schemas for convenient imports."""

from .billing import (
    BillingRunRequest,
    BillingRunResponse,
    SchedulerJobStatus,
    SchedulerStatusResponse,
    TenantBillingOutcomeRead,
)
from .common import Money, PaginatedResponse
from .expense import ExpenseBase, ExpenseCreate, ExpenseListResponse, ExpenseRead
from .invoice import (
    ChargeCreate,
    ChargeRead,
    InvoiceCreate,
    InvoiceDetail,
    InvoiceListResponse,
    InvoiceRead,
    InvoiceTransactionRead,
    InvoiceUpdate,
)
from .transaction import (
    TransactionCreate,
    TransactionInvoiceSummary,
    TransactionListResponse,
    TransactionRead,
)

__all__ = [
    "BillingRunRequest",
    "BillingRunResponse",
    "SchedulerJobStatus",
    "SchedulerStatusResponse",
    "TenantBillingOutcomeRead",
    "Money",
    "PaginatedResponse",
    "ExpenseBase",
    "ExpenseCreate",
    "ExpenseRead",
    "ExpenseListResponse",
    "ChargeCreate",
    "ChargeRead",
    "InvoiceCreate",
    "InvoiceDetail",
    "InvoiceListResponse",
    "InvoiceRead",
    "InvoiceTransactionRead",
    "InvoiceUpdate",
    "TransactionCreate",
    "TransactionInvoiceSummary",
    "TransactionListResponse",
    "TransactionRead",
]
