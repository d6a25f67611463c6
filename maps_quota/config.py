"""Ceilings, tiers and runtime settings for the Maps usage governor.

The numbers mirror the budget the web client was tuned for: the provider
bills per request, so daily ceilings are set well under the free credit and
the per-minute/per-second ceilings smooth bursts from debounced search boxes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from .models import CATEGORIES

REFERENCE_TIMEZONE = "America/Los_Angeles"
DEFAULT_TIER = "free"
DEFAULT_STORE_PATH = os.path.join("~", ".maps_quota", "api_usage.json")

# Percent of the daily ceiling at which the usage warning escalates.
WARNING_THRESHOLDS = {
    "warning": 60,
    "critical": 80,
    "blocked": 100,
}


@dataclass(frozen=True)
class Ceiling:
    """Maximum calls per window; ``None`` leaves that window unbounded."""

    second: Optional[int] = None
    minute: Optional[int] = None
    day: Optional[int] = None

    def limit(self, window: str) -> Optional[int]:
        return getattr(self, window)


Limits = Dict[str, Ceiling]

BUDGET_LIMITS: Limits = {
    "directions": Ceiling(second=10, minute=300, day=2500),
    "places": Ceiling(second=10, minute=300, day=500),
    "geocoding": Ceiling(second=50, minute=3000, day=5000),
    "mapLoads": Ceiling(second=50, minute=1000, day=2000),
}


@dataclass(frozen=True)
class TierAllowance:
    daily_map_loads: int
    daily_directions: int
    daily_places: int


TIERS: Dict[str, TierAllowance] = {
    "free": TierAllowance(daily_map_loads=500, daily_directions=100, daily_places=50),
    "basic": TierAllowance(daily_map_loads=2500, daily_directions=500, daily_places=250),
    "pro": TierAllowance(daily_map_loads=10000, daily_directions=2000, daily_places=1000),
}


def limits_for_tier(tier: Optional[str] = DEFAULT_TIER) -> Limits:
    """Return per-category ceilings for a user tier, falling back to ``free``."""

    if tier == "budget":
        return dict(BUDGET_LIMITS)

    allowance = TIERS.get(tier or DEFAULT_TIER, TIERS[DEFAULT_TIER])
    geocoding_daily = allowance.daily_places * 2
    return {
        "directions": Ceiling(
            second=10,
            minute=min(300, allowance.daily_directions // 10),
            day=allowance.daily_directions,
        ),
        "places": Ceiling(
            second=10,
            minute=min(300, allowance.daily_places // 10),
            day=allowance.daily_places,
        ),
        "geocoding": Ceiling(
            second=10,
            minute=min(300, geocoding_daily // 10),
            day=geocoding_daily,
        ),
        "mapLoads": Ceiling(
            second=50,
            minute=min(1000, allowance.daily_map_loads // 10),
            day=allowance.daily_map_loads,
        ),
    }


@dataclass
class Settings:
    tier: str = DEFAULT_TIER
    store_path: str = DEFAULT_STORE_PATH
    timezone: str = REFERENCE_TIMEZONE
    api_key: Optional[str] = None
    limits: Limits = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.limits:
            self.limits = limits_for_tier(self.tier)
        missing = [name for name in CATEGORIES if name not in self.limits]
        if missing:
            raise ValueError(f"No ceilings configured for: {', '.join(missing)}")

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the environment (call ``load_dotenv`` first)."""

        return cls(
            tier=os.getenv("MAPS_QUOTA_TIER", DEFAULT_TIER),
            store_path=os.getenv("MAPS_QUOTA_FILE", DEFAULT_STORE_PATH),
            timezone=os.getenv("MAPS_QUOTA_TIMEZONE", REFERENCE_TIMEZONE),
            api_key=os.getenv("GOOGLE_MAPS_API_KEY"),
        )
