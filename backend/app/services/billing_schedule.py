"""Time-of-day gate polled by the recurring billing scheduler."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import pytz

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Jakarta"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScheduleGate:
    """Decide on each tick whether the once-a-day billing pass should run.

    The scheduler wakes up every few seconds or minutes; the gate only opens
    when the wall-clock time in ``timezone_name`` equals ``run_hour`` and
    ``run_minute``. Any failure to read the clock or resolve the timezone
    keeps the gate closed.
    """

    def __init__(
        self,
        run_hour: int,
        run_minute: int,
        timezone_name: str = DEFAULT_TIMEZONE,
        *,
        clock: Optional[Clock] = None,
    ) -> None:
        if not 0 <= run_hour <= 23:
            raise ValueError("run_hour must be between 0 and 23")
        if not 0 <= run_minute <= 59:
            raise ValueError("run_minute must be between 0 and 59")
        self.run_hour = run_hour
        self.run_minute = run_minute
        self.timezone_name = timezone_name
        self.clock = clock or utc_now

    def localize(self, moment: Optional[datetime] = None) -> datetime:
        """Return ``moment`` (or the clock's now) expressed in the gate timezone."""

        current = moment if moment is not None else self.clock()
        if current.tzinfo is None:
            raise ValueError("Naive datetimes cannot be converted between timezones")
        return current.astimezone(pytz.timezone(self.timezone_name))

    def should_run(self, moment: Optional[datetime] = None) -> bool:
        try:
            zoned = self.localize(moment)
        except Exception as exc:
            LOGGER.error("Unable to resolve the current billing time: %s", exc)
            return False

        matches = zoned.hour == self.run_hour and zoned.minute == self.run_minute
        if matches:
            LOGGER.info(
                "Current time %s matches the billing schedule %02d:%02d",
                zoned.strftime("%Y-%m-%d %H:%M:%S %Z"),
                self.run_hour,
                self.run_minute,
            )
        return matches

    def describe(self) -> str:
        return f"{self.run_hour:02d}:{self.run_minute:02d} {self.timezone_name}"
