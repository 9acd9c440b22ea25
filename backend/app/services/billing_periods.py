"""Calendar helpers that compute consecutive billing periods."""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta

DEFAULT_ISSUE_LEAD_DAYS = 7
DEFAULT_DUE_AFTER_DAYS = 7
DEFAULT_BANISH_AFTER_DAYS = 14


def end_of_month(value: date) -> date:
    """Return the last calendar day of the month containing ``value``."""

    _, last_day = monthrange(value.year, value.month)
    return date(value.year, value.month, last_day)


def is_last_day_of_month(value: date) -> bool:
    return value == end_of_month(value)


def add_months(base_date: date, months: int) -> date:
    """Shift ``base_date`` by whole calendar months, clamping the day."""

    month_index = base_date.month - 1 + months
    year = base_date.year + month_index // 12
    month = month_index % 12 + 1
    last_day = monthrange(year, month)[1]
    return date(year, month, min(base_date.day, last_day))


def period_end_for_start(period_start: date) -> date:
    """Return the inclusive end of the one-month period beginning on ``period_start``.

    A period starting on the last day of a month is re-anchored to month end
    so 28/29/30/31-day months do not drift the cycle; any other start keeps
    its day of month (``2024-02-15`` covers through ``2024-03-14``).
    """

    candidate = add_months(period_start, 1)
    if is_last_day_of_month(period_start):
        return end_of_month(candidate)
    return candidate - timedelta(days=1)


def calculate_next_period_end(current_period_end: date) -> date:
    """Return the end of the period that follows the one ending on ``current_period_end``."""

    return period_end_for_start(current_period_end + timedelta(days=1))


@dataclass(frozen=True)
class BillingDates:
    """Dates stamped on the invoice for one billing period."""

    period_start: date
    period_end: date
    issue_date: date
    due_date: date
    banish_date: date


def compute_next_billing_dates(
    current_period_end: date,
    *,
    issue_lead_days: int = DEFAULT_ISSUE_LEAD_DAYS,
    due_after_days: int = DEFAULT_DUE_AFTER_DAYS,
    banish_after_days: int = DEFAULT_BANISH_AFTER_DAYS,
) -> BillingDates:
    """Derive every date of the next invoice from the current period end."""

    period_start = current_period_end + timedelta(days=1)
    return BillingDates(
        period_start=period_start,
        period_end=calculate_next_period_end(current_period_end),
        issue_date=period_start - timedelta(days=issue_lead_days),
        due_date=period_start + timedelta(days=due_after_days),
        banish_date=period_start + timedelta(days=banish_after_days),
    )
