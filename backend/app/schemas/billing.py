from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class BillingRunRequest(BaseModel):
    """Options for a manually triggered billing pass."""

    reference_date: Optional[date] = Field(
        default=None, description="Date treated as today; defaults to the local date"
    )
    lookahead_days: Optional[int] = Field(
        default=None, ge=0, le=60, description="Days ahead used to pick due tenants"
    )


class TenantBillingOutcomeRead(BaseModel):
    tenant_id: str
    outcome: str
    invoice_id: Optional[str] = None
    detail: Optional[str] = None


class BillingRunResponse(BaseModel):
    ran: bool
    reference_date: Optional[date] = None
    aborted: bool = False
    error: Optional[str] = None
    skipped_reason: Optional[str] = None
    issued: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: List[TenantBillingOutcomeRead] = Field(default_factory=list)


class SchedulerJobStatus(BaseModel):
    enabled: bool
    last_tick: Optional[datetime] = None
    last_run: Optional[datetime] = None
    last_summary: Optional[Dict[str, Any]] = None
    recent_errors: List[str] = Field(default_factory=list)


class SchedulerStatusResponse(BaseModel):
    jobs: Dict[str, SchedulerJobStatus] = Field(default_factory=dict)
