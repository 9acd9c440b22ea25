"""Service layer encapsulating business logic for API routers."""

from .billing_scheduler import (
    BillingSettings,
    build_billing_service,
    start_recurring_billing_scheduler,
    stop_recurring_billing_scheduler,
)
from .billing_schedule import ScheduleGate
from .expenses import ExpenseFilters, ExpenseNotFoundError, ExpenseService, ExpenseServiceError
from .invoices import InvoiceNotFoundError, InvoiceService, InvoiceServiceError
from .recurring_billing import (
    BillingOutcome,
    BillingPassResult,
    ChargeAssembler,
    DueTenantSelector,
    InvoiceIssuer,
    RecurringBillingService,
)
from .transactions import (
    TransactionNotFoundError,
    TransactionService,
    TransactionServiceError,
)

__all__ = [
    "BillingSettings",
    "build_billing_service",
    "start_recurring_billing_scheduler",
    "stop_recurring_billing_scheduler",
    "ScheduleGate",
    "ExpenseFilters",
    "ExpenseNotFoundError",
    "ExpenseService",
    "ExpenseServiceError",
    "InvoiceService",
    "InvoiceServiceError",
    "InvoiceNotFoundError",
    "BillingOutcome",
    "BillingPassResult",
    "ChargeAssembler",
    "DueTenantSelector",
    "InvoiceIssuer",
    "RecurringBillingService",
    "TransactionService",
    "TransactionServiceError",
    "TransactionNotFoundError",
]
