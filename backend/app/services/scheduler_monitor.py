"""In-process health record for background jobs, shown by ``GET /billing/scheduler``."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Optional

JOB_RECURRING_BILLING = "recurring_billing"
MAX_RECENT_ERRORS = 10


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class JobStatus:
    enabled: bool = True
    last_tick: Optional[datetime] = None
    last_run: Optional[datetime] = None
    last_summary: Optional[Dict[str, Any]] = None
    recent_errors: deque = field(default_factory=lambda: deque(maxlen=MAX_RECENT_ERRORS))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "last_tick": self.last_tick,
            "last_run": self.last_run,
            "last_summary": self.last_summary,
            "recent_errors": list(self.recent_errors),
        }


class SchedulerMonitor:
    """Class-level registry shared by the scheduler thread and the API."""

    _lock = Lock()
    _jobs: Dict[str, JobStatus] = {}

    @classmethod
    def _status(cls, job_name: str) -> JobStatus:
        # Callers hold ``_lock``.
        return cls._jobs.setdefault(job_name, JobStatus())

    @classmethod
    def set_job_enabled(cls, job_name: str, enabled: bool) -> None:
        with cls._lock:
            cls._status(job_name).enabled = enabled

    @classmethod
    def record_tick(cls, job_name: str) -> None:
        with cls._lock:
            cls._status(job_name).last_tick = _now()

    @classmethod
    def record_summary(cls, job_name: str, summary: Dict[str, Any]) -> None:
        """Keep the outcome of the last pass that ran or aborted."""

        with cls._lock:
            status = cls._status(job_name)
            status.last_run = _now()
            status.last_summary = dict(summary)

    @classmethod
    def record_error(cls, job_name: str, message: str) -> None:
        with cls._lock:
            cls._status(job_name).recent_errors.append(f"{_now().isoformat()} - {message}")

    @classmethod
    def snapshot(cls) -> Dict[str, Dict[str, Any]]:
        with cls._lock:
            return {name: status.as_dict() for name, status in cls._jobs.items()}

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._jobs.clear()
