from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from backend.app import models
from backend.app.services.billing_periods import compute_next_billing_dates
from backend.app.services.invoices import ChargeDraft
from backend.app.services.recurring_billing import (
    BILLING_ACTOR,
    AssembledCharges,
    BillingOutcome,
    ChargeAssembler,
    CostLine,
    DueTenantSelector,
    InvoiceIssuer,
    RecurringBillingService,
    TenantBillingContext,
)

TODAY = date(2024, 1, 25)
ACTIVE = models.CostStatus.ACTIVE
INACTIVE = models.CostStatus.INACTIVE


def _invoices_for(db: Session, tenant_id: str) -> list[models.Invoice]:
    return (
        db.query(models.Invoice)
        .filter(models.Invoice.tenant_id == tenant_id)
        .order_by(models.Invoice.period_start)
        .all()
    )


def _service(db: Session, gate, **kwargs) -> RecurringBillingService:
    return RecurringBillingService(db, gate=gate, lookahead_days=7, **kwargs)


def test_end_to_end_pass_issues_next_month_invoice(db_session, gate, tenant_factory):
    tenant = tenant_factory(
        latest_period_end=date(2024, 1, 31),
        price_amount=Decimal("500000"),
        additional=[("WiFi", Decimal("50000"), ACTIVE)],
    )

    result = _service(db_session, gate).run_pass(force=True, reference_date=TODAY)

    assert result.ran is True
    assert result.issued == 1
    assert result.failed == 0

    invoices = _invoices_for(db_session, tenant.id)
    assert len(invoices) == 2
    issued = invoices[-1]
    assert issued.period_start == date(2024, 2, 1)
    assert issued.period_end == date(2024, 2, 29)
    assert issued.issue_date == date(2024, 1, 25)
    assert issued.due_date == date(2024, 2, 8)
    assert issued.banish_date == date(2024, 2, 15)
    assert issued.status == models.InvoiceStatus.ISSUED
    assert issued.total_amount_due == Decimal("550000")
    assert issued.total_amount_paid == Decimal("0")
    assert issued.created_by == BILLING_ACTOR
    assert issued.room_id == tenant.room_id
    assert issued.description == (
        f"Monthly invoice for room {tenant.room.room_number} period: 2024-02-01 to 2024-02-29"
    )
    assert [charge.amount for charge in issued.charges] == [Decimal("500000"), Decimal("50000")]
    assert {charge.transaction_type for charge in issued.charges} == {models.ChargeType.DEBIT}
    assert result.outcomes[0].invoice_id == issued.id


def test_total_matches_sum_of_charges_and_skips_inactive_costs(db_session, gate, tenant_factory):
    tenant = tenant_factory(
        price_amount=Decimal("750000"),
        additional=[
            ("Parking", Decimal("25000.50"), ACTIVE),
            ("Old laundry", Decimal("99999"), INACTIVE),
        ],
        other=[(None, Decimal("120000"), ACTIVE), ("Cleaning", Decimal("1"), INACTIVE)],
    )

    _service(db_session, gate).run_pass(force=True, reference_date=TODAY)

    issued = _invoices_for(db_session, tenant.id)[-1]
    amounts = [charge.amount for charge in issued.charges]
    assert amounts == [Decimal("750000"), Decimal("25000.50"), Decimal("120000")]
    assert issued.total_amount_due == sum(amounts, Decimal("0"))
    assert issued.total_amount_due == Decimal("895000.50")
    names = {charge.name for charge in issued.charges}
    assert "Other Cost" in names
    assert "Old laundry" not in names


@pytest.mark.parametrize(
    ("latest_period_end", "selected"),
    [
        (date(2024, 1, 23), False),
        (date(2024, 1, 24), True),
        (date(2024, 1, 25), True),
        (date(2024, 2, 1), True),
        (date(2024, 2, 2), False),
    ],
)
def test_selection_window_boundaries(db_session, tenant_factory, latest_period_end, selected):
    tenant = tenant_factory(latest_period_end=latest_period_end)

    contexts, _ = DueTenantSelector(db_session).select_due(TODAY, 7)

    assert (tenant.id in {context.tenant_id for context in contexts}) is selected


def test_selector_ignores_inactive_tenants(db_session, tenant_factory):
    waiting = tenant_factory(tenancy_status=models.TenancyStatus.WAITING)
    inactive = tenant_factory(tenancy_status=models.TenancyStatus.INACTIVE)
    active = tenant_factory()

    contexts, exclusions = DueTenantSelector(db_session).select_due(TODAY, 7)

    selected = {context.tenant_id for context in contexts}
    assert active.id in selected
    assert waiting.id not in selected
    assert inactive.id not in selected
    assert exclusions == []


def test_tenant_without_active_price_is_skipped(db_session, gate, tenant_factory, caplog):
    no_price = tenant_factory(with_price=False)
    inactive_price = tenant_factory(price_status=INACTIVE)
    billable = tenant_factory()

    with caplog.at_level(logging.WARNING):
        result = _service(db_session, gate).run_pass(force=True, reference_date=TODAY)

    outcomes = {item.tenant_id: item.outcome for item in result.outcomes}
    assert outcomes[no_price.id] == BillingOutcome.SKIPPED_NO_ACTIVE_PRICE
    assert outcomes[inactive_price.id] == BillingOutcome.SKIPPED_NO_ACTIVE_PRICE
    assert outcomes[billable.id] == BillingOutcome.ISSUED
    assert len(_invoices_for(db_session, no_price.id)) == 1
    assert "no active price" in caplog.text


def test_second_pass_is_idempotent(db_session, gate, tenant_factory):
    tenant = tenant_factory()
    service = _service(db_session, gate)

    first = service.run_pass(force=True, reference_date=TODAY)
    second = service.run_pass(force=True, reference_date=TODAY)

    assert first.issued == 1
    assert second.issued == 0
    assert len(_invoices_for(db_session, tenant.id)) == 2


def test_issuer_guard_skips_existing_live_invoice(db_session, tenant_factory):
    tenant = tenant_factory()
    context, = DueTenantSelector(db_session).select_due(TODAY, 7)[0]
    dates = compute_next_billing_dates(date(2024, 1, 31))
    charges = ChargeAssembler().assemble(context).charges
    issuer = InvoiceIssuer(db_session)

    first = issuer.issue(context, dates, charges)
    second = issuer.issue(context, dates, charges)

    assert first.created is True
    assert second.created is False
    assert second.invoice_id == first.invoice_id
    assert len(_invoices_for(db_session, tenant.id)) == 2


def test_void_invoice_does_not_block_reissue(db_session, tenant_factory):
    tenant = tenant_factory()
    context, = DueTenantSelector(db_session).select_due(TODAY, 7)[0]
    dates = compute_next_billing_dates(date(2024, 1, 31))
    charges = ChargeAssembler().assemble(context).charges
    issuer = InvoiceIssuer(db_session)

    first = issuer.issue(context, dates, charges)
    voided = db_session.get(models.Invoice, first.invoice_id)
    voided.status = models.InvoiceStatus.VOID
    db_session.commit()

    second = issuer.issue(context, dates, charges)

    assert second.created is True
    assert second.invoice_id != first.invoice_id


def test_only_void_invoice_in_window_skips_tenant(db_session, gate, tenant_factory):
    tenant = tenant_factory(latest_status=models.InvoiceStatus.VOID)

    result = _service(db_session, gate).run_pass(force=True, reference_date=TODAY)

    assert [item.outcome for item in result.outcomes] == [BillingOutcome.SKIPPED_NO_INVOICE]
    assert len(_invoices_for(db_session, tenant.id)) == 1


class _NegativeChargeAssembler(ChargeAssembler):
    def assemble(self, context: TenantBillingContext) -> AssembledCharges:
        assembled = super().assemble(context)
        broken = assembled.charges + (ChargeDraft(name="Broken", amount=Decimal("-1")),)
        return AssembledCharges(charges=broken, total=assembled.total - 1)


def test_failed_issuance_leaves_no_partial_invoice(db_session, gate, tenant_factory):
    tenant = tenant_factory()

    result = _service(db_session, gate, assembler=_NegativeChargeAssembler()).run_pass(
        force=True, reference_date=TODAY
    )

    assert result.failed == 1
    assert result.outcomes[0].outcome == BillingOutcome.FAILED
    invoices = _invoices_for(db_session, tenant.id)
    assert len(invoices) == 1
    assert invoices[0].period_end == date(2024, 1, 31)
    orphan_charges = (
        db_session.query(models.Charge).filter(models.Charge.name == "Broken").count()
    )
    assert orphan_charges == 0


class _FailingIssuer(InvoiceIssuer):
    def __init__(self, db, failing_tenant_id):
        super().__init__(db)
        self.failing_tenant_id = failing_tenant_id

    def issue(self, context, dates, charges):
        if context.tenant_id == self.failing_tenant_id:
            raise RuntimeError("database went away")
        return super().issue(context, dates, charges)


def test_failure_for_one_tenant_does_not_affect_others(db_session, gate, tenant_factory, caplog):
    failing = tenant_factory()
    healthy = tenant_factory()

    with caplog.at_level(logging.ERROR):
        result = _service(
            db_session, gate, issuer=_FailingIssuer(db_session, failing.id)
        ).run_pass(force=True, reference_date=TODAY)

    outcomes = {item.tenant_id: item for item in result.outcomes}
    assert outcomes[failing.id].outcome == BillingOutcome.FAILED
    assert "database went away" in outcomes[failing.id].detail
    assert outcomes[healthy.id].outcome == BillingOutcome.ISSUED
    assert len(_invoices_for(db_session, failing.id)) == 1
    assert len(_invoices_for(db_session, healthy.id)) == 2
    assert f"Failed to bill tenant {failing.id}" in caplog.text


class _BrokenSelector(DueTenantSelector):
    def select_due(self, today, lookahead_days):
        raise RuntimeError("selection query failed")


def test_selection_failure_aborts_pass(db_session, gate, tenant_factory):
    tenant_factory()

    result = _service(db_session, gate, selector=_BrokenSelector(db_session)).run_pass(
        force=True, reference_date=TODAY
    )

    assert result.ran is True
    assert result.aborted is True
    assert result.error == "selection query failed"
    assert result.outcomes == []


def test_gate_closed_skips_pass(db_session, gate, tenant_factory):
    tenant = tenant_factory()
    service = _service(
        db_session, gate, clock=lambda: datetime(2024, 1, 25, 12, 0, tzinfo=timezone.utc)
    )

    result = service.run_pass()

    assert result.ran is False
    assert result.skipped_reason == "outside schedule"
    assert len(_invoices_for(db_session, tenant.id)) == 1


def test_gate_open_runs_with_local_date(db_session, gate, tenant_factory):
    tenant = tenant_factory()
    service = _service(
        db_session, gate, clock=lambda: datetime(2024, 1, 24, 19, 0, tzinfo=timezone.utc)
    )

    result = service.run_pass()

    assert result.ran is True
    assert result.reference_date == TODAY
    assert result.issued == 1
    assert len(_invoices_for(db_session, tenant.id)) == 2


def test_concurrent_pass_is_rejected(db_session, gate, tenant_factory):
    tenant_factory()
    service = _service(db_session, gate)

    assert RecurringBillingService._run_lock.acquire(blocking=False)
    try:
        result = service.run_pass(force=True, reference_date=TODAY)
    finally:
        RecurringBillingService._run_lock.release()

    assert result.ran is False
    assert result.skipped_reason == "already running"


def test_charge_assembler_fallbacks():
    context = TenantBillingContext(
        tenant_id="tenant-1",
        room_id="room-1",
        room_number="B07",
        price=CostLine(name="Big room", amount=Decimal("900000")),
        additional=(CostLine(name=None, amount=Decimal("10000")),),
        other=(CostLine(name=None, amount=Decimal("5000"), description="Water"),),
    )

    assembled = ChargeAssembler().assemble(context)

    assert [charge.name for charge in assembled.charges] == ["Big room", "Additional Cost", "Other Cost"]
    assert [charge.description for charge in assembled.charges] == [
        "Base rent for room B07",
        "Additional charge details",
        "Water",
    ]
    assert assembled.total == Decimal("915000")


def test_pass_result_serialises_counts(db_session, gate, tenant_factory):
    tenant_factory()
    tenant_factory(with_price=False)

    payload = _service(db_session, gate).run_pass(force=True, reference_date=TODAY).to_dict()

    assert payload["reference_date"] == "2024-01-25"
    assert payload["issued"] == 1
    assert payload["skipped"] == 1
    assert payload["failed"] == 0
    assert len(payload["outcomes"]) == 2


def test_price_only_invoice_total_equals_price(db_session, gate, tenant_factory):
    tenant = tenant_factory(price_amount=Decimal("650000.75"))

    _service(db_session, gate).run_pass(force=True, reference_date=TODAY)

    issued = _invoices_for(db_session, tenant.id)[-1]
    assert len(issued.charges) == 1
    assert issued.charges[0].amount == Decimal("650000.75")
    assert issued.total_amount_due == tenant.room.price.amount


class _GarbledPeriodEndSelector(DueTenantSelector):
    def __init__(self, db: Session, overrides: dict) -> None:
        super().__init__(db)
        self.overrides = overrides

    def _latest_period_ends(self):
        return [
            (tenant_id, self.overrides.get(tenant_id, period_end))
            for tenant_id, period_end in super()._latest_period_ends()
        ]


def test_malformed_period_end_is_skipped_with_warning(db_session, gate, tenant_factory, caplog):
    missing = tenant_factory()
    garbled = tenant_factory()
    billable = tenant_factory()
    selector = _GarbledPeriodEndSelector(
        db_session, {missing.id: None, garbled.id: "31/01/2024"}
    )

    with caplog.at_level(logging.WARNING):
        result = _service(db_session, gate, selector=selector).run_pass(
            force=True, reference_date=TODAY
        )

    outcomes = {item.tenant_id: item.outcome for item in result.outcomes}
    assert outcomes[missing.id] == BillingOutcome.SKIPPED_INVALID_PERIOD
    assert outcomes[garbled.id] == BillingOutcome.SKIPPED_INVALID_PERIOD
    assert outcomes[billable.id] == BillingOutcome.ISSUED
    assert len(_invoices_for(db_session, garbled.id)) == 1
    assert "'31/01/2024' is not a valid date" in caplog.text


def _broken_clock() -> datetime:
    raise OSError("clock unavailable")


def test_clock_failure_skips_scheduled_pass(db_session, gate, tenant_factory, caplog):
    tenant = tenant_factory()

    with caplog.at_level(logging.ERROR):
        result = _service(db_session, gate, clock=_broken_clock).run_pass()

    assert result.ran is False
    assert result.skipped_reason == "clock unavailable"
    assert result.error == "clock unavailable"
    assert len(_invoices_for(db_session, tenant.id)) == 1
    assert "Unable to read the clock" in caplog.text


def test_forced_pass_with_reference_date_ignores_clock_failure(db_session, gate, tenant_factory):
    tenant = tenant_factory()

    result = _service(db_session, gate, clock=_broken_clock).run_pass(
        force=True, reference_date=TODAY
    )

    assert result.ran is True
    assert result.issued == 1
    assert len(_invoices_for(db_session, tenant.id)) == 2
