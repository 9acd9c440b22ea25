"""Background worker that triggers the recurring billing pass."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ..database import session_scope
from .billing_periods import DEFAULT_BANISH_AFTER_DAYS, DEFAULT_DUE_AFTER_DAYS
from .billing_schedule import DEFAULT_TIMEZONE, ScheduleGate
from .recurring_billing import (
    DEFAULT_LOOKAHEAD_DAYS,
    BillingPassResult,
    RecurringBillingService,
)
from .scheduler_monitor import JOB_RECURRING_BILLING, SchedulerMonitor

LOGGER = logging.getLogger(__name__)

DEFAULT_RUN_HOUR = 2
DEFAULT_RUN_MINUTE = 0
DEFAULT_TICK_SECONDS = 60


def _read_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _read_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Invalid value for %s=%s; using %s", name, raw, default)
        return default


@dataclass(frozen=True)
class BillingSettings:
    """Runtime configuration of the recurring billing job."""

    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS
    run_hour: int = DEFAULT_RUN_HOUR
    run_minute: int = DEFAULT_RUN_MINUTE
    tick_seconds: int = DEFAULT_TICK_SECONDS
    timezone_name: str = DEFAULT_TIMEZONE
    due_after_days: int = DEFAULT_DUE_AFTER_DAYS
    banish_after_days: int = DEFAULT_BANISH_AFTER_DAYS

    @classmethod
    def from_env(cls) -> "BillingSettings":
        timezone_name = (os.getenv("APP_TIMEZONE") or "").strip() or DEFAULT_TIMEZONE
        return cls(
            lookahead_days=max(_read_int("BILLING_LOOKAHEAD_DAYS", DEFAULT_LOOKAHEAD_DAYS), 0),
            run_hour=min(max(_read_int("BILLING_RUN_HOUR", DEFAULT_RUN_HOUR), 0), 23),
            run_minute=min(max(_read_int("BILLING_RUN_MINUTE", DEFAULT_RUN_MINUTE), 0), 59),
            tick_seconds=max(_read_int("BILLING_TICK_SECONDS", DEFAULT_TICK_SECONDS), 1),
            timezone_name=timezone_name,
            due_after_days=max(_read_int("BILLING_DUE_AFTER_DAYS", DEFAULT_DUE_AFTER_DAYS), 0),
            banish_after_days=max(
                _read_int("BILLING_BANISH_AFTER_DAYS", DEFAULT_BANISH_AFTER_DAYS), 0
            ),
        )

    def build_gate(self) -> ScheduleGate:
        return ScheduleGate(self.run_hour, self.run_minute, self.timezone_name)


def build_billing_service(
    session: Session, settings: Optional[BillingSettings] = None, **overrides
) -> RecurringBillingService:
    """Wire a :class:`RecurringBillingService` from settings."""

    settings = settings or BillingSettings.from_env()
    options = {
        "gate": settings.build_gate(),
        "lookahead_days": settings.lookahead_days,
        "due_after_days": settings.due_after_days,
        "banish_after_days": settings.banish_after_days,
    }
    options.update(overrides)
    return RecurringBillingService(session, **options)


def _execute_billing_tick(settings: BillingSettings) -> Optional[BillingPassResult]:
    result: Optional[BillingPassResult] = None
    try:
        with session_scope() as session:
            service = build_billing_service(session, settings)
            result = service.run_pass()
        if result.ran or result.aborted:
            SchedulerMonitor.record_summary(JOB_RECURRING_BILLING, result.to_dict())
        if result.aborted:
            SchedulerMonitor.record_error(
                JOB_RECURRING_BILLING, f"Billing pass aborted: {result.error}"
            )
        elif result.error:
            SchedulerMonitor.record_error(
                JOB_RECURRING_BILLING, f"Billing pass skipped: {result.error}"
            )
        elif result.failed:
            SchedulerMonitor.record_error(
                JOB_RECURRING_BILLING,
                f"{result.failed} tenant(s) failed during the billing pass",
            )
    except Exception as exc:  # pragma: no cover - defensive logging
        LOGGER.exception("Error while running the recurring billing tick: %s", exc)
        SchedulerMonitor.record_error(JOB_RECURRING_BILLING, str(exc))
    finally:
        SchedulerMonitor.record_tick(JOB_RECURRING_BILLING)
    return result


_billing_thread: Optional[threading.Thread] = None
_billing_stop = threading.Event()


def _billing_worker(settings: BillingSettings) -> None:
    LOGGER.info(
        "Recurring billing scheduler checks every %ss for %s",
        settings.tick_seconds,
        f"{settings.run_hour:02d}:{settings.run_minute:02d} {settings.timezone_name}",
    )
    while not _billing_stop.is_set():
        _execute_billing_tick(settings)
        if _billing_stop.wait(settings.tick_seconds):
            break


def start_recurring_billing_scheduler(settings: Optional[BillingSettings] = None) -> None:
    """Start the background worker that runs the daily billing pass."""

    global _billing_thread
    if _billing_thread and _billing_thread.is_alive():
        return

    settings = settings or BillingSettings.from_env()
    _billing_stop.clear()
    _billing_thread = threading.Thread(
        target=_billing_worker, args=(settings,), name="recurring-billing", daemon=True
    )
    _billing_thread.start()
    SchedulerMonitor.set_job_enabled(JOB_RECURRING_BILLING, True)
    LOGGER.info("Recurring billing scheduler started.")


def stop_recurring_billing_scheduler() -> None:
    """Stop the recurring billing background worker."""

    _billing_stop.set()
    if _billing_thread and _billing_thread.is_alive():
        _billing_thread.join(timeout=5)
        LOGGER.info("Recurring billing scheduler stopped.")
