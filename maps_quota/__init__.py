"""Usage tracking and gating for the metered Google Maps APIs used by the trip planner."""

from .cache import CacheTTL, RouteCache
from .classifier import ErrorCategory, ErrorDetails, classify
from .config import Ceiling, Settings, limits_for_tier
from .governor import UsageGovernor, UsageWarning
from .logging import get_logger, setup_logging
from .models import CATEGORIES, CategoryUsage, UsageSnapshot
from .policy import Admission, Headroom, QuotaLimitError, ThresholdPolicy, UnknownCategoryError
from .simulation import SimulationHarness
from .store import JsonFileQuotaStore, MemoryQuotaStore, QuotaStore
from .windows import WindowTracker


def build_governor(settings: Settings) -> UsageGovernor:
    """Wire a governor to the file store and timezone named in ``settings``."""

    store = JsonFileQuotaStore(settings.store_path)
    return UsageGovernor(store, settings.limits, WindowTracker(tz=settings.timezone))


__all__ = [
    "Admission",
    "CATEGORIES",
    "CacheTTL",
    "CategoryUsage",
    "Ceiling",
    "ErrorCategory",
    "ErrorDetails",
    "Headroom",
    "JsonFileQuotaStore",
    "MemoryQuotaStore",
    "QuotaLimitError",
    "QuotaStore",
    "RouteCache",
    "Settings",
    "SimulationHarness",
    "ThresholdPolicy",
    "UnknownCategoryError",
    "UsageGovernor",
    "UsageSnapshot",
    "UsageWarning",
    "WindowTracker",
    "build_governor",
    "classify",
    "get_logger",
    "limits_for_tier",
    "setup_logging",
]
