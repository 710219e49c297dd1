"""Injected time source and service-day arithmetic."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from turnline.core.settings import settings
from turnline.db.time import ensure_utc, utcnow


class Clock:
    """Wall clock bound to the fixed zone that defines the service day.

    Every component that needs "now" or "today" takes a Clock instead of
    reading the system time directly, so tests can pin both.
    """

    def __init__(self, timezone: str | None = None) -> None:
        self.tz = ZoneInfo(timezone or settings.service_timezone)

    def now(self) -> datetime:
        """Return the current instant as an aware UTC datetime."""
        return utcnow()

    def local_now(self) -> datetime:
        """Return the current instant in the service time zone."""
        return self.now().astimezone(self.tz)

    def service_day(self, at: datetime | None = None) -> date:
        """Return the service day containing ``at`` (default: now)."""
        instant = ensure_utc(at) if at is not None else self.now()
        return instant.astimezone(self.tz).date()

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """Return the UTC instants at which ``day`` starts and ends."""
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.tz)
        return start.astimezone(ZoneInfo("UTC")), end.astimezone(ZoneInfo("UTC"))

    def next_run_at(self, run_at: time, after: datetime | None = None) -> datetime:
        """Return the next local instant matching ``run_at`` strictly after ``after``.

        The result is expressed in the service zone. A scheduled time that
        equals the current minute is treated as still pending, mirroring a
        cron-style trigger that fires within that minute.
        """
        local = (ensure_utc(after) if after is not None else self.now()).astimezone(self.tz)
        candidate = datetime.combine(local.date(), run_at, tzinfo=self.tz)
        if local <= candidate:
            return candidate
        return datetime.combine(local.date() + timedelta(days=1), run_at, tzinfo=self.tz)


_CLOCK: Clock | None = None


def get_clock() -> Clock:
    """Return the process-wide clock instance."""
    global _CLOCK
    if _CLOCK is None:
        _CLOCK = Clock()
    return _CLOCK
