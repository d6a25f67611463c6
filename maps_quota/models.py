from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

CATEGORIES = ("directions", "places", "geocoding", "mapLoads")
WINDOWS = ("second", "minute", "day")


class SnapshotFormatError(ValueError):
    """Raised when persisted usage data does not have the expected shape."""


def _count(raw: Dict[str, Any], key: str) -> int:
    value = raw.get(key, 0)
    # bool is an int subclass; a stored true/false is not a counter.
    if isinstance(value, bool) or not isinstance(value, int):
        raise SnapshotFormatError(f"{key} must be an integer, got {value!r}")
    if value < 0:
        raise SnapshotFormatError(f"{key} must not be negative, got {value}")
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO8601 stamp, treating naive values as UTC."""

    if not isinstance(value, str):
        raise SnapshotFormatError(f"timestamp must be a string, got {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise SnapshotFormatError(f"invalid timestamp {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _optional_stamp(raw: Dict[str, Any], key: str) -> Optional[datetime]:
    value = raw.get(key)
    if value is None:
        return None
    return parse_timestamp(value)


@dataclass
class CategoryUsage:
    """Call counts for one API category over the three windows."""

    second: int = 0
    minute: int = 0
    day: int = 0
    second_start: Optional[datetime] = None
    minute_start: Optional[datetime] = None

    @classmethod
    def load(cls, raw: Any) -> "CategoryUsage":
        if not isinstance(raw, dict):
            raise SnapshotFormatError(f"category usage must be an object, got {type(raw).__name__}")
        return cls(
            second=_count(raw, "second"),
            minute=_count(raw, "minute"),
            day=_count(raw, "day"),
            second_start=_optional_stamp(raw, "secondStart"),
            minute_start=_optional_stamp(raw, "minuteStart"),
        )

    def dump(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"second": self.second, "minute": self.minute, "day": self.day}
        if self.second_start is not None:
            data["secondStart"] = format_timestamp(self.second_start)
        if self.minute_start is not None:
            data["minuteStart"] = format_timestamp(self.minute_start)
        return data

    def count(self, window: str) -> int:
        return getattr(self, window)


@dataclass
class UsageSnapshot:
    """The single persisted usage record.

    ``date`` is the instant the day-level counters were started; which calendar
    day that is depends on the reference timezone it is read in.
    """

    date: datetime
    categories: Dict[str, CategoryUsage] = field(default_factory=dict)

    @classmethod
    def empty(cls, now: datetime) -> "UsageSnapshot":
        return cls(date=now, categories={name: CategoryUsage() for name in CATEGORIES})

    @classmethod
    def load(cls, raw: Any) -> "UsageSnapshot":
        """Build a snapshot from its JSON form.

        Categories that are missing start at zero; categories that are present
        but malformed reject the whole snapshot.
        """

        if not isinstance(raw, dict):
            raise SnapshotFormatError("snapshot must be a JSON object")
        if "date" not in raw:
            raise SnapshotFormatError("snapshot has no date stamp")
        categories = {}
        for name in CATEGORIES:
            if name in raw:
                categories[name] = CategoryUsage.load(raw[name])
            else:
                categories[name] = CategoryUsage()
        return cls(date=parse_timestamp(raw["date"]), categories=categories)

    def dump(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"date": format_timestamp(self.date)}
        for name, usage in self.categories.items():
            data[name] = usage.dump()
        return data

    def copy(self) -> "UsageSnapshot":
        return UsageSnapshot.load(self.dump())

    def usage(self, category: str) -> CategoryUsage:
        return self.categories[category]
