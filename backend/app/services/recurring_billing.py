"""Automated recurring billing: select due tenants and issue their next invoice."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from .. import models
from .billing_periods import (
    DEFAULT_BANISH_AFTER_DAYS,
    DEFAULT_DUE_AFTER_DAYS,
    BillingDates,
    compute_next_billing_dates,
)
from .billing_schedule import ScheduleGate, utc_now
from .invoices import ChargeDraft, find_live_invoice, persist_invoice, sum_charges

LOGGER = logging.getLogger(__name__)

BILLING_ACTOR = "Automated Billing Task"
DEFAULT_LOOKAHEAD_DAYS = 7

ADDITIONAL_COST_NAME = "Additional Cost"
ADDITIONAL_COST_DESCRIPTION = "Additional charge details"
OTHER_COST_NAME = "Other Cost"
OTHER_COST_DESCRIPTION = "Other cost details"


class BillingOutcome(str, enum.Enum):
    """Result of processing one tenant during a billing pass."""

    ISSUED = "issued"
    SKIPPED_EXISTING = "skipped_existing"
    SKIPPED_NO_INVOICE = "skipped_no_invoice"
    SKIPPED_NO_ACTIVE_PRICE = "skipped_no_active_price"
    SKIPPED_INVALID_PERIOD = "skipped_invalid_period"
    FAILED = "failed"


@dataclass(frozen=True)
class CostLine:
    name: Optional[str]
    amount: Decimal
    description: Optional[str] = None


@dataclass(frozen=True)
class TenantBillingContext:
    """Plain-data snapshot of what is needed to bill one tenant."""

    tenant_id: str
    room_id: str
    room_number: str
    price: CostLine
    additional: Tuple[CostLine, ...] = ()
    other: Tuple[CostLine, ...] = ()


@dataclass(frozen=True)
class AssembledCharges:
    charges: Tuple[ChargeDraft, ...]
    total: Decimal


@dataclass(frozen=True)
class TenantBillingOutcome:
    tenant_id: str
    outcome: BillingOutcome
    invoice_id: Optional[str] = None
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "outcome": self.outcome.value,
            "invoice_id": self.invoice_id,
            "detail": self.detail,
        }


@dataclass
class BillingPassResult:
    """Summary returned by :meth:`RecurringBillingService.run_pass`."""

    ran: bool
    reference_date: Optional[date] = None
    aborted: bool = False
    error: Optional[str] = None
    skipped_reason: Optional[str] = None
    outcomes: List[TenantBillingOutcome] = field(default_factory=list)

    def _count(self, *kinds: BillingOutcome) -> int:
        return sum(1 for item in self.outcomes if item.outcome in kinds)

    @property
    def issued(self) -> int:
        return self._count(BillingOutcome.ISSUED)

    @property
    def failed(self) -> int:
        return self._count(BillingOutcome.FAILED)

    @property
    def skipped(self) -> int:
        return len(self.outcomes) - self.issued - self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ran": self.ran,
            "reference_date": self.reference_date.isoformat() if self.reference_date else None,
            "aborted": self.aborted,
            "error": self.error,
            "skipped_reason": self.skipped_reason,
            "issued": self.issued,
            "skipped": self.skipped,
            "failed": self.failed,
            "outcomes": [item.to_dict() for item in self.outcomes],
        }


@dataclass(frozen=True)
class IssueResult:
    invoice_id: str
    created: bool


def _coerce_period_end(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _is_active(record: Any) -> bool:
    return record is not None and record.status == models.CostStatus.ACTIVE


def _cost_line(record: Any) -> CostLine:
    return CostLine(name=record.name, amount=Decimal(record.amount), description=record.description)


class DueTenantSelector:
    """Find active tenants whose latest invoice ends inside the lookahead window."""

    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def window(today: date, lookahead_days: int) -> Tuple[date, date]:
        return today - timedelta(days=1), today + timedelta(days=lookahead_days)

    def _latest_period_ends(self) -> List[Tuple[str, Any]]:
        return (
            self.db.query(models.Invoice.tenant_id, func.max(models.Invoice.period_end))
            .filter(models.Invoice.tenant_id.isnot(None))
            .group_by(models.Invoice.tenant_id)
            .all()
        )

    def select_due(
        self, today: date, lookahead_days: int
    ) -> Tuple[List[TenantBillingContext], List[TenantBillingOutcome]]:
        """Return billable tenant contexts plus the tenants excluded on the way."""

        window_start, window_end = self.window(today, lookahead_days)
        exclusions: List[TenantBillingOutcome] = []
        due_ids: List[Any] = []

        for tenant_id, raw_period_end in self._latest_period_ends():
            period_end = _coerce_period_end(raw_period_end)
            if period_end is None:
                LOGGER.warning(
                    "Skipping tenant %s: latest period end %r is not a valid date",
                    tenant_id,
                    raw_period_end,
                )
                exclusions.append(
                    TenantBillingOutcome(
                        tenant_id=str(tenant_id),
                        outcome=BillingOutcome.SKIPPED_INVALID_PERIOD,
                        detail=f"Invalid period end: {raw_period_end!r}",
                    )
                )
                continue
            if window_start <= period_end <= window_end:
                due_ids.append(tenant_id)

        if not due_ids:
            return [], exclusions

        tenants = (
            self.db.query(models.Tenant)
            .options(
                selectinload(models.Tenant.room).selectinload(models.Room.price),
                selectinload(models.Tenant.room).selectinload(models.Room.additional_prices),
                selectinload(models.Tenant.room).selectinload(models.Room.other_costs),
            )
            .filter(models.Tenant.id.in_(due_ids))
            .filter(models.Tenant.tenancy_status == models.TenancyStatus.ACTIVE)
            .order_by(models.Tenant.created_at, models.Tenant.id)
            .all()
        )

        contexts: List[TenantBillingContext] = []
        for tenant in tenants:
            room = tenant.room
            if room is None or not _is_active(room.price):
                LOGGER.warning("Skipping tenant %s: room has no active price", tenant.id)
                exclusions.append(
                    TenantBillingOutcome(
                        tenant_id=str(tenant.id),
                        outcome=BillingOutcome.SKIPPED_NO_ACTIVE_PRICE,
                        detail="Room has no active price",
                    )
                )
                continue
            contexts.append(
                TenantBillingContext(
                    tenant_id=str(tenant.id),
                    room_id=str(room.id),
                    room_number=room.room_number,
                    price=_cost_line(room.price),
                    additional=tuple(
                        _cost_line(item) for item in room.additional_prices if _is_active(item)
                    ),
                    other=tuple(_cost_line(item) for item in room.other_costs if _is_active(item)),
                )
            )
        return contexts, exclusions

    def latest_invoice(
        self, tenant_id: str, today: date, lookahead_days: int
    ) -> Optional[models.Invoice]:
        """Return the tenant's most recent non-void invoice ending inside the window."""

        window_start, window_end = self.window(today, lookahead_days)
        return (
            self.db.query(models.Invoice)
            .filter(models.Invoice.tenant_id == tenant_id)
            .filter(models.Invoice.period_end >= window_start)
            .filter(models.Invoice.period_end <= window_end)
            .filter(models.Invoice.status != models.InvoiceStatus.VOID)
            .order_by(models.Invoice.period_end.desc(), models.Invoice.issue_date.desc())
            .first()
        )


class ChargeAssembler:
    """Turn a tenant's room cost context into invoice charge lines."""

    def assemble(self, context: TenantBillingContext) -> AssembledCharges:
        charges: List[ChargeDraft] = [
            ChargeDraft(
                name=context.price.name or f"Room {context.room_number}",
                amount=context.price.amount,
                description=context.price.description
                or f"Base rent for room {context.room_number}",
            )
        ]
        charges.extend(
            ChargeDraft(
                name=item.name or ADDITIONAL_COST_NAME,
                amount=item.amount,
                description=item.description or ADDITIONAL_COST_DESCRIPTION,
            )
            for item in context.additional
        )
        charges.extend(
            ChargeDraft(
                name=item.name or OTHER_COST_NAME,
                amount=item.amount,
                description=item.description or OTHER_COST_DESCRIPTION,
            )
            for item in context.other
        )
        return AssembledCharges(charges=tuple(charges), total=sum_charges(charges))


class InvoiceIssuer:
    """Create one invoice with its charges for a tenant, at most once per period."""

    def __init__(self, db: Session, actor: str = BILLING_ACTOR) -> None:
        self.db = db
        self.actor = actor

    def issue(
        self,
        context: TenantBillingContext,
        dates: BillingDates,
        charges: Sequence[ChargeDraft],
    ) -> IssueResult:
        existing = find_live_invoice(self.db, context.tenant_id, dates.period_start)
        if existing is not None:
            LOGGER.info(
                "Invoice %s already covers tenant %s from %s; skipping",
                existing.id,
                context.tenant_id,
                dates.period_start.isoformat(),
            )
            return IssueResult(invoice_id=str(existing.id), created=False)

        invoice = persist_invoice(
            self.db,
            charges=charges,
            actor=self.actor,
            tenant_id=context.tenant_id,
            room_id=context.room_id,
            period_start=dates.period_start,
            period_end=dates.period_end,
            issue_date=dates.issue_date,
            due_date=dates.due_date,
            banish_date=dates.banish_date,
            description=(
                f"Monthly invoice for room {context.room_number} period: "
                f"{dates.period_start.isoformat()} to {dates.period_end.isoformat()}"
            ),
        )
        return IssueResult(invoice_id=str(invoice.id), created=True)


class RecurringBillingService:
    """Run one billing pass: gate check, tenant selection and per-tenant issuance.

    Tenants are processed one after another and every tenant's invoice is
    committed on its own, so a failure only costs that tenant's invoice for
    this pass. A class-level lock keeps passes from overlapping inside the
    process; the live-invoice guard covers anything that slips past it.
    """

    _run_lock = threading.Lock()

    def __init__(
        self,
        db: Session,
        *,
        gate: ScheduleGate,
        lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
        due_after_days: int = DEFAULT_DUE_AFTER_DAYS,
        banish_after_days: int = DEFAULT_BANISH_AFTER_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
        selector: Optional[DueTenantSelector] = None,
        assembler: Optional[ChargeAssembler] = None,
        issuer: Optional[InvoiceIssuer] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.db = db
        self.gate = gate
        self.lookahead_days = max(lookahead_days, 0)
        self.due_after_days = due_after_days
        self.banish_after_days = banish_after_days
        self.clock = clock or utc_now
        self.selector = selector or DueTenantSelector(db)
        self.assembler = assembler or ChargeAssembler()
        self.issuer = issuer or InvoiceIssuer(db)
        self.logger = logger or LOGGER

    def run_pass(
        self, *, force: bool = False, reference_date: Optional[date] = None
    ) -> BillingPassResult:
        if not self._run_lock.acquire(blocking=False):
            self.logger.warning("A billing pass is already running; skipping this one")
            return BillingPassResult(ran=False, skipped_reason="already running")
        try:
            return self._run_locked(force=force, reference_date=reference_date)
        finally:
            self._run_lock.release()

    def _run_locked(self, *, force: bool, reference_date: Optional[date]) -> BillingPassResult:
        try:
            moment = self.clock()
        except Exception as exc:
            if not force or reference_date is None:
                self.logger.error("Unable to read the clock, skipping billing pass: %s", exc)
                return BillingPassResult(
                    ran=False, skipped_reason="clock unavailable", error=str(exc)
                )
            moment = None

        if not force and not self.gate.should_run(moment):
            return BillingPassResult(ran=False, skipped_reason="outside schedule")

        try:
            today = reference_date or self.gate.localize(moment).date()
        except Exception as exc:
            self.logger.error("Unable to determine the billing date: %s", exc)
            return BillingPassResult(ran=False, aborted=True, error=str(exc))

        result = BillingPassResult(ran=True, reference_date=today)
        self.logger.info(
            "Starting billing pass for %s with a %s day lookahead",
            today.isoformat(),
            self.lookahead_days,
        )

        try:
            contexts, exclusions = self.selector.select_due(today, self.lookahead_days)
        except Exception as exc:
            self.logger.exception("Billing pass aborted while selecting due tenants: %s", exc)
            self.db.rollback()
            result.aborted = True
            result.error = str(exc)
            return result

        result.outcomes.extend(exclusions)
        if not contexts:
            self.logger.info("No tenants are due for billing on %s", today.isoformat())

        for context in contexts:
            result.outcomes.append(self._bill_tenant(context, today))

        self.logger.info(
            "Billing pass for %s finished: %s issued, %s skipped, %s failed",
            today.isoformat(),
            result.issued,
            result.skipped,
            result.failed,
        )
        return result

    def _bill_tenant(self, context: TenantBillingContext, today: date) -> TenantBillingOutcome:
        try:
            latest = self.selector.latest_invoice(context.tenant_id, today, self.lookahead_days)
            if latest is None:
                self.logger.info(
                    "Tenant %s has no qualifying invoice in the billing window", context.tenant_id
                )
                return TenantBillingOutcome(
                    tenant_id=context.tenant_id,
                    outcome=BillingOutcome.SKIPPED_NO_INVOICE,
                    detail="No qualifying latest invoice",
                )

            period_end = _coerce_period_end(latest.period_end)
            if period_end is None:
                self.logger.warning(
                    "Tenant %s latest invoice %s has an invalid period end",
                    context.tenant_id,
                    latest.id,
                )
                return TenantBillingOutcome(
                    tenant_id=context.tenant_id,
                    outcome=BillingOutcome.SKIPPED_INVALID_PERIOD,
                    detail=f"Invalid period end on invoice {latest.id}",
                )

            dates = compute_next_billing_dates(
                period_end,
                issue_lead_days=self.lookahead_days,
                due_after_days=self.due_after_days,
                banish_after_days=self.banish_after_days,
            )
            assembled = self.assembler.assemble(context)
            issued = self.issuer.issue(context, dates, assembled.charges)
        except Exception as exc:
            self.db.rollback()
            self.logger.exception("Failed to bill tenant %s: %s", context.tenant_id, exc)
            return TenantBillingOutcome(
                tenant_id=context.tenant_id,
                outcome=BillingOutcome.FAILED,
                detail=str(exc),
            )

        if not issued.created:
            return TenantBillingOutcome(
                tenant_id=context.tenant_id,
                outcome=BillingOutcome.SKIPPED_EXISTING,
                invoice_id=issued.invoice_id,
                detail=f"Invoice already exists for period starting {dates.period_start.isoformat()}",
            )

        self.logger.info(
            "Issued invoice %s for tenant %s covering %s to %s (total %s)",
            issued.invoice_id,
            context.tenant_id,
            dates.period_start.isoformat(),
            dates.period_end.isoformat(),
            assembled.total,
        )
        return TenantBillingOutcome(
            tenant_id=context.tenant_id,
            outcome=BillingOutcome.ISSUED,
            invoice_id=issued.invoice_id,
        )
