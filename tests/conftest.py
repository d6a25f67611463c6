from datetime import datetime, timedelta, timezone

import pytest

from maps_quota import Ceiling, JsonFileQuotaStore, UsageGovernor, WindowTracker, limits_for_tier


class FakeClock:
    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


# 2024-06-15 12:00 in Los Angeles (PDT, UTC-7).
NOON_PACIFIC = datetime(2024, 6, 15, 19, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FakeClock(NOON_PACIFIC)


@pytest.fixture
def tracker(clock):
    return WindowTracker(clock=clock)


@pytest.fixture
def store(tmp_path):
    return JsonFileQuotaStore(tmp_path / "usage.json")


@pytest.fixture
def make_governor(store, tracker):
    def factory(limits=None):
        return UsageGovernor(store, limits or limits_for_tier("free"), tracker)

    return factory


@pytest.fixture
def directions_only():
    return {"directions": Ceiling(day=100)}
