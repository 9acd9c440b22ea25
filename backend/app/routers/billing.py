"""Router exposing manual billing runs and scheduler health."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..services import BillingSettings, build_billing_service
from ..services.scheduler_monitor import JOB_RECURRING_BILLING, SchedulerMonitor

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.post("/run", response_model=schemas.BillingRunResponse)
def run_billing(
    payload: Optional[schemas.BillingRunRequest] = Body(default=None),
    db: Session = Depends(get_db),
) -> schemas.BillingRunResponse:
    """Run a billing pass immediately, ignoring the time-of-day gate."""

    request = payload or schemas.BillingRunRequest()
    overrides = {}
    if request.lookahead_days is not None:
        overrides["lookahead_days"] = request.lookahead_days

    service = build_billing_service(db, BillingSettings.from_env(), **overrides)
    result = service.run_pass(force=True, reference_date=request.reference_date)
    if result.ran or result.aborted:
        SchedulerMonitor.record_summary(JOB_RECURRING_BILLING, result.to_dict())
    LOGGER.info("Manual billing pass finished: %s", result.to_dict())
    return schemas.BillingRunResponse(**result.to_dict())


@router.get("/scheduler", response_model=schemas.SchedulerStatusResponse)
def scheduler_status() -> schemas.SchedulerStatusResponse:
    return schemas.SchedulerStatusResponse(jobs=SchedulerMonitor.snapshot())
