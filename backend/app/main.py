"""FastAPI application for the boarding-house back office."""

import logging
import os
import re
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .migrations import run_database_migrations
from .routers import (
    billing_router,
    expenses_router,
    invoices_router,
    transactions_router,
)
from .services.billing_scheduler import (
    start_recurring_billing_scheduler,
    stop_recurring_billing_scheduler,
)
from .services.scheduler_monitor import JOB_RECURRING_BILLING, SchedulerMonitor

LOGGER = logging.getLogger(__name__)

ALLOWED_ORIGINS_ENV = "BACKEND_ALLOWED_ORIGINS"
# Vite dev and preview servers; these stay allowed even when the variable is set.
DEV_SERVER_ORIGINS = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:4173",
    "http://127.0.0.1:4173",
)
LOCALHOST_ORIGIN_REGEX = r"https?://(localhost|127\.0\.0\.1|0\.0\.0\.0)(:\d+)?$"


def resolve_allowed_origins(raw_value: Optional[str]) -> list[str]:
    """Parse a comma or whitespace separated origin list and add the dev servers."""

    configured = re.split(r"[\s,]+", raw_value or "")
    origins = {origin.rstrip("/") for origin in configured if origin.strip("/ ")}
    origins.update(DEV_SERVER_ORIGINS)
    return sorted(origins)


def _job_enabled(env_flag: str) -> bool:
    raw = os.getenv(env_flag)
    if raw is None:
        return True
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _maybe_start_job(env_flag: str, job_name: str, starter: Callable[[], None]) -> None:
    enabled = _job_enabled(env_flag)
    SchedulerMonitor.set_job_enabled(job_name, enabled)
    if enabled:
        starter()
    else:
        LOGGER.info("%s disabled via %s", job_name, env_flag)


def ensure_database_is_ready() -> None:
    LOGGER.info("Applying pending migrations before serving requests")
    run_database_migrations()


def start_background_jobs() -> None:
    _maybe_start_job(
        env_flag="ENABLE_RECURRING_BILLING",
        job_name=JOB_RECURRING_BILLING,
        starter=start_recurring_billing_scheduler,
    )


def stop_background_jobs() -> None:
    stop_recurring_billing_scheduler()


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_database_is_ready()
    start_background_jobs()
    try:
        yield
    finally:
        stop_background_jobs()


app = FastAPI(title="Boarding House Backoffice API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=resolve_allowed_origins(os.getenv(ALLOWED_ORIGINS_ENV)),
    allow_origin_regex=LOCALHOST_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(invoices_router, prefix="/invoices", tags=["invoices"])
app.include_router(transactions_router, prefix="/transactions", tags=["transactions"])
app.include_router(expenses_router, prefix="/expenses", tags=["expenses"])
app.include_router(billing_router, prefix="/billing", tags=["billing"])


@app.get("/", tags=["health"])
def read_root() -> dict[str, str]:
    return {"status": "ok"}
