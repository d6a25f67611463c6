"""Rolling second/minute windows and the calendar-day window.

Every read of "now" in the governor goes through ``WindowTracker.now`` so that
tests can pin the clock. Nothing here runs on a timer: windows roll over
lazily, the next time a snapshot is looked at.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from .config import REFERENCE_TIMEZONE
from .models import CategoryUsage, UsageSnapshot

Clock = Callable[[], datetime]

SECOND_WINDOW = timedelta(seconds=1)
MINUTE_WINDOW = timedelta(minutes=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WindowTracker:
    def __init__(self, clock: Optional[Clock] = None, tz: str = REFERENCE_TIMEZONE):
        self._clock = clock or utc_now
        self.tz = ZoneInfo(tz)

    def now(self) -> datetime:
        current = self._clock()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current

    def day_of(self, moment: datetime) -> date:
        """Calendar date of ``moment`` in the reference timezone."""

        return moment.astimezone(self.tz).date()

    def today(self) -> date:
        return self.day_of(self.now())

    def next_reset(self, now: Optional[datetime] = None) -> datetime:
        """Next reference-timezone midnight, as an aware datetime."""

        local = (now or self.now()).astimezone(self.tz)
        tomorrow = local.date() + timedelta(days=1)
        return datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=self.tz)

    def roll(self, snapshot: UsageSnapshot, now: datetime) -> bool:
        """Reset whichever windows of ``snapshot`` have elapsed at ``now``.

        Returns True when anything changed. A new day wipes every category
        and advances the stamp; otherwise each category's second and minute
        windows are checked on their own.
        """

        if self.day_of(snapshot.date) != self.day_of(now):
            for name in snapshot.categories:
                snapshot.categories[name] = CategoryUsage()
            snapshot.date = now
            return True

        changed = False
        for usage in snapshot.categories.values():
            changed = self._roll_window(usage, "second", SECOND_WINDOW, now) or changed
            changed = self._roll_window(usage, "minute", MINUTE_WINDOW, now) or changed
        return changed

    @staticmethod
    def _roll_window(usage: CategoryUsage, window: str, span: timedelta, now: datetime) -> bool:
        start_attr = f"{window}_start"
        start = getattr(usage, start_attr)
        if start is not None and now - start < span:
            return False
        if start is None and getattr(usage, window) == 0:
            return False
        setattr(usage, window, 0)
        setattr(usage, start_attr, None)
        return True

    @staticmethod
    def projected(usage: CategoryUsage) -> CategoryUsage:
        """Counts after one more call, assuming ``usage`` is already rolled."""

        return CategoryUsage(
            second=usage.second + 1,
            minute=usage.minute + 1,
            day=usage.day + 1,
            second_start=usage.second_start,
            minute_start=usage.minute_start,
        )

    @staticmethod
    def commit(usage: CategoryUsage, now: datetime) -> None:
        """Count one call, opening any window that is not running yet."""

        if usage.second_start is None:
            usage.second_start = now
        if usage.minute_start is None:
            usage.minute_start = now
        usage.second += 1
        usage.minute += 1
        usage.day += 1
