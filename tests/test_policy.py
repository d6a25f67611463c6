import pytest

from maps_quota import Ceiling, CategoryUsage, ThresholdPolicy, UnknownCategoryError, WindowTracker, limits_for_tier


def _evaluate(policy, category, usage):
    return policy.evaluate(category, usage, WindowTracker.projected(usage))


def test_admits_when_every_window_has_room():
    policy = ThresholdPolicy({"places": Ceiling(second=10, minute=5, day=50)})
    admission = _evaluate(policy, "places", CategoryUsage(second=0, minute=3, day=20))
    assert admission.admitted is True
    assert admission.breached == ()
    assert admission.remaining.as_dict() == {"second": 9, "minute": 1, "day": 29}


def test_a_single_full_window_denies_the_call():
    policy = ThresholdPolicy({"places": Ceiling(second=10, minute=5, day=50)})
    admission = _evaluate(policy, "places", CategoryUsage(second=0, minute=5, day=20))
    assert admission.admitted is False
    assert admission.breached == ("minute",)
    # Headroom on denial describes the unchanged counts.
    assert admission.remaining.as_dict() == {"second": 10, "minute": 0, "day": 30}


def test_reports_every_breached_window():
    policy = ThresholdPolicy({"directions": Ceiling(second=1, minute=1, day=1)})
    admission = _evaluate(policy, "directions", CategoryUsage(second=1, minute=1, day=1))
    assert admission.breached == ("second", "minute", "day")


def test_unbounded_windows_never_breach():
    policy = ThresholdPolicy({"directions": Ceiling(day=100)})
    admission = _evaluate(policy, "directions", CategoryUsage(second=10_000, minute=10_000, day=0))
    assert admission.admitted is True
    assert admission.remaining.second is None
    assert admission.remaining.minute is None
    assert admission.remaining.day == 99


def test_unknown_category_is_rejected():
    policy = ThresholdPolicy({"directions": Ceiling(day=100)})
    with pytest.raises(UnknownCategoryError):
        policy.ceiling("places")
    with pytest.raises(UnknownCategoryError):
        ThresholdPolicy({"streetView": Ceiling(day=1)})


def test_free_tier_limits():
    limits = limits_for_tier("free")
    assert limits["directions"] == Ceiling(second=10, minute=10, day=100)
    assert limits["places"] == Ceiling(second=10, minute=5, day=50)
    assert limits["geocoding"] == Ceiling(second=10, minute=10, day=100)
    assert limits["mapLoads"] == Ceiling(second=50, minute=50, day=500)


def test_pro_tier_caps_per_minute_limits():
    limits = limits_for_tier("pro")
    assert limits["directions"].minute == 200
    assert limits["places"].minute == 100
    assert limits["geocoding"].minute == 200
    assert limits["mapLoads"].minute == 1000


def test_unknown_tier_falls_back_to_free():
    assert limits_for_tier("platinum") == limits_for_tier("free")
    assert limits_for_tier(None) == limits_for_tier("free")


def test_budget_tier():
    limits = limits_for_tier("budget")
    assert limits["geocoding"] == Ceiling(second=50, minute=3000, day=5000)
