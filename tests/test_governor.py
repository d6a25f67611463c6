import logging
import threading

import pytest

from maps_quota import CATEGORIES, Ceiling, CategoryUsage, QuotaLimitError, UnknownCategoryError, UsageGovernor, UsageSnapshot


def _seed(store, clock, category, day):
    snapshot = UsageSnapshot.empty(clock())
    snapshot.usage(category).day = day
    store.save(snapshot)


def test_fresh_install_starts_at_zero(make_governor, store, clock):
    governor = make_governor()
    snapshot = governor.snapshot()
    assert snapshot.date == clock()
    assert all(snapshot.usage(name) == CategoryUsage() for name in CATEGORIES)
    assert store.load() is not None


def test_admitted_call_is_counted_and_persisted(make_governor, store):
    governor = make_governor()
    admission = governor.check_and_record("directions")
    assert admission.admitted is True
    assert admission.remaining.as_dict() == {"second": 9, "minute": 9, "day": 99}

    persisted = store.load().usage("directions")
    assert (persisted.second, persisted.minute, persisted.day) == (1, 1, 1)


def test_per_second_ceiling_is_never_exceeded(make_governor):
    governor = make_governor()
    results = [governor.check_and_record("directions").admitted for _ in range(25)]
    assert results.count(True) == 10
    assert results[:10] == [True] * 10


def test_second_window_frees_up_after_a_second(make_governor, clock):
    governor = make_governor({"geocoding": Ceiling(second=2, minute=100, day=100)})
    assert governor.check_and_record("geocoding").admitted
    assert governor.check_and_record("geocoding").admitted
    denied = governor.check_and_record("geocoding")
    assert denied.admitted is False
    assert denied.breached == ("second",)

    clock.advance(seconds=1)
    assert governor.check_and_record("geocoding").admitted
    assert governor.snapshot().usage("geocoding").day == 3


def test_daily_ceiling_denies_without_counting(make_governor, store, clock, directions_only):
    _seed(store, clock, "directions", 100)
    governor = make_governor(directions_only)
    before = store.load()

    admission = governor.check_and_record("directions")
    assert admission.admitted is False
    assert "day" in admission.breached
    assert admission.remaining.day == 0
    assert store.load() == before
    assert governor.snapshot().usage("directions").day == 100


def test_headroom_scenario_near_daily_ceiling(make_governor, store, clock, directions_only):
    _seed(store, clock, "directions", 95)
    governor = make_governor(directions_only)

    first = governor.check_and_record("directions")
    assert first.admitted is True
    assert first.remaining.day == 4

    for _ in range(4):
        assert governor.check_and_record("directions").admitted is True
    assert governor.check_and_record("directions").admitted is False
    assert governor.snapshot().usage("directions").day == 100


def test_categories_are_independent(make_governor, store, clock):
    _seed(store, clock, "places", 50)
    governor = make_governor()
    assert governor.check_and_record("places").admitted is False
    assert governor.check_and_record("geocoding").admitted is True


def test_day_boundary_resets_all_counters(make_governor, store, clock):
    snapshot = UsageSnapshot.empty(clock())
    for name in CATEGORIES:
        snapshot.categories[name] = CategoryUsage(second=1, minute=3, day=30, second_start=clock(), minute_start=clock())
    store.save(snapshot)
    governor = make_governor()

    clock.advance(hours=12, minutes=1)  # 00:01 Pacific the next day
    rolled = governor.snapshot()
    assert rolled.date == clock()
    for name in CATEGORIES:
        assert rolled.usage(name) == CategoryUsage()
    assert store.load().usage("places").day == 0


def test_stays_open_across_midnight(make_governor, store, clock, directions_only):
    governor = make_governor(directions_only)
    for _ in range(100):
        governor.check_and_record("directions")
    assert governor.check_and_record("directions").admitted is False

    clock.advance(hours=12)
    admission = governor.check_and_record("directions")
    assert admission.admitted is True
    assert admission.remaining.day == 99


def test_snapshot_read_does_not_increment(make_governor):
    governor = make_governor()
    governor.check_and_record("mapLoads")
    governor.snapshot()
    governor.snapshot()
    assert governor.snapshot().usage("mapLoads").day == 1


def test_snapshot_is_a_copy(make_governor):
    governor = make_governor()
    view = governor.snapshot()
    view.usage("directions").day = 99
    assert governor.snapshot().usage("directions").day == 0


def test_reset_yields_zero_counters_for_today(make_governor, store, clock):
    _seed(store, clock, "directions", 77)
    governor = make_governor()
    clock.advance(minutes=5)

    governor.reset()
    snapshot = governor.snapshot()
    assert snapshot.date == clock()
    assert all(snapshot.usage(name) == CategoryUsage() for name in CATEGORIES)
    assert store.load() == snapshot


def test_counts_survive_a_restart(make_governor, store, tracker):
    governor = make_governor()
    for _ in range(3):
        governor.check_and_record("places")

    restarted = UsageGovernor(store, governor.policy.limits, tracker)
    assert restarted.snapshot().usage("places").day == 3
    assert restarted.remaining("places").day == 47


def test_reload_picks_up_external_writes(make_governor, store, clock):
    governor = make_governor()
    governor.check_and_record("directions")
    _seed(store, clock, "directions", 100)

    assert governor.snapshot().usage("directions").day == 1
    governor.reload()
    assert governor.snapshot().usage("directions").day == 100


def test_corrupt_store_self_heals(make_governor, store, caplog):
    store.path.write_text("garbage", encoding="utf-8")
    governor = make_governor()
    with caplog.at_level(logging.WARNING):
        admission = governor.check_and_record("directions")
    assert admission.admitted is True
    assert store.load().usage("directions").day == 1


def test_unknown_category_raises(make_governor, directions_only):
    governor = make_governor(directions_only)
    with pytest.raises(UnknownCategoryError):
        governor.check_and_record("places")


def test_call_runs_function_only_when_admitted(make_governor, store, clock, directions_only):
    governor = make_governor(directions_only)
    assert governor.call("directions", lambda a, b=0: a + b, 2, b=3) == 5

    _seed(store, clock, "directions", 100)
    governor.reload()
    calls = []
    with pytest.raises(QuotaLimitError) as excinfo:
        governor.call("directions", calls.append, "sent")
    assert calls == []
    assert excinfo.value.category == "directions"
    assert excinfo.value.breached == ("day",)


def test_usage_stats_and_warning_levels(make_governor, store, clock):
    governor = make_governor()
    assert governor.usage_warning() is None

    stats = governor.usage_stats()
    assert stats["places"]["daily"] == {"used": 0, "limit": 50, "percentage": 0.0}

    for day, level in ((30, "warning"), (40, "critical"), (50, "blocked")):
        _seed(store, clock, "places", day)
        governor.reload()
        warning = governor.usage_warning()
        assert warning is not None and warning.level == level

    assert governor.usage_warning().message == "You've reached your daily API limit"


def test_denial_is_logged(make_governor, store, clock, directions_only, caplog):
    _seed(store, clock, "directions", 100)
    governor = make_governor(directions_only)
    with caplog.at_level(logging.WARNING, logger="maps_quota.governor"):
        governor.check_and_record("directions")
    assert any("Denied directions call" in record.getMessage() for record in caplog.records)


def test_clock_advance_within_window_keeps_counts(make_governor, clock):
    governor = make_governor()
    governor.check_and_record("directions")
    clock.advance(seconds=30)
    usage = governor.snapshot().usage("directions")
    assert (usage.second, usage.minute, usage.day) == (0, 1, 1)
    clock.advance(seconds=30)
    usage = governor.snapshot().usage("directions")
    assert (usage.second, usage.minute, usage.day) == (0, 0, 1)


def test_snapshot_remaining_after_time_passes(make_governor, clock):
    governor = make_governor()
    for _ in range(10):
        governor.check_and_record("directions")
    assert governor.remaining("directions").minute == 0
    clock.advance(minutes=1)
    assert governor.remaining("directions").minute == 10
    assert governor.remaining("directions").day == 90


def test_concurrent_callers_cannot_overshoot_ceiling(make_governor, store):
    governor = make_governor({"directions": Ceiling(second=5, minute=100, day=100)})
    callers = 50
    barrier = threading.Barrier(callers)
    results = []
    results_lock = threading.Lock()

    def call():
        barrier.wait()
        admission = governor.check_and_record("directions")
        with results_lock:
            results.append(admission.admitted)

    threads = [threading.Thread(target=call) for _ in range(callers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == callers
    assert results.count(True) == 5
    persisted = store.load().usage("directions")
    assert (persisted.second, persisted.day) == (5, 5)
