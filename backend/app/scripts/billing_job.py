"""Command line entry-point to run a recurring billing pass on demand."""

from __future__ import annotations

import argparse
import logging
import os
from datetime import date
from typing import Optional

from ..database import session_scope
from ..services.billing_scheduler import BillingSettings, build_billing_service
from ..services.recurring_billing import DEFAULT_LOOKAHEAD_DAYS

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid date '{raw}', expected YYYY-MM-DD") from exc


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Issue the next invoice for every active tenant whose billing cycle is due."
    )
    parser.add_argument(
        "--date",
        type=_parse_date,
        default=None,
        help="Reference date treated as today (default: current date in APP_TIMEZONE).",
    )
    parser.add_argument(
        "--lookahead-days",
        type=int,
        default=int(os.getenv("BILLING_LOOKAHEAD_DAYS", str(DEFAULT_LOOKAHEAD_DAYS))),
        help="Days ahead used to select tenants due for billing (default: 7).",
    )
    parser.add_argument(
        "--respect-schedule",
        action="store_true",
        help="Only run when the current time matches BILLING_RUN_HOUR/BILLING_RUN_MINUTE.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print additional debugging information.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    settings = BillingSettings.from_env()
    lookahead_days = max(args.lookahead_days, 0)

    with session_scope() as session:
        service = build_billing_service(session, settings, lookahead_days=lookahead_days)
        result = service.run_pass(force=not args.respect_schedule, reference_date=args.date)
        LOGGER.info("Billing pass summary: %s", result.to_dict())

    if result.aborted or result.failed:
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
