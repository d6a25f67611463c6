"""Write synthetic usage snapshots to exercise the warning and blocking paths.

Debug use only. Each operation writes straight to the store and then calls
``on_reload`` so whatever holds usage state re-reads it from storage.
"""

from __future__ import annotations

from typing import Callable, Optional

from .config import Limits
from .logging import get_logger
from .models import CATEGORIES, UsageSnapshot
from .store import QuotaStore
from .windows import WindowTracker

HIGH_USAGE_PERCENT = 95

logger = get_logger(__name__)


class SimulationHarness:
    def __init__(self, store: QuotaStore, limits: Limits, on_reload: Callable[[], None], tracker: Optional[WindowTracker] = None):
        self.store = store
        self.limits = limits
        self.on_reload = on_reload
        self.tracker = tracker or WindowTracker()

    def _write_daily(self, percent: int) -> UsageSnapshot:
        snapshot = UsageSnapshot.empty(self.tracker.now())
        for name in CATEGORIES:
            ceiling = self.limits.get(name)
            if ceiling is None or ceiling.day is None:
                continue
            snapshot.usage(name).day = ceiling.day * percent // 100
        self.store.save(snapshot)
        self.on_reload()
        return snapshot

    def high(self) -> UsageSnapshot:
        """Put every category just under its daily ceiling."""

        snapshot = self._write_daily(HIGH_USAGE_PERCENT)
        logger.info("Simulated high usage (%d%% of daily limits)", HIGH_USAGE_PERCENT)
        return snapshot

    def max(self) -> UsageSnapshot:
        snapshot = self._write_daily(100)
        logger.info("Simulated maximum usage (daily limits reached)")
        return snapshot

    def reset(self) -> None:
        self.store.clear()
        self.on_reload()
        logger.info("Simulated usage cleared")
