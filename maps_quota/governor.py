"""Usage governor: the one place that reads and writes the usage snapshot."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, TypeVar

from .config import WARNING_THRESHOLDS, Limits
from .logging import get_logger
from .models import UsageSnapshot
from .policy import Admission, Headroom, QuotaLimitError, ThresholdPolicy
from .store import QuotaStore
from .windows import WindowTracker

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass(frozen=True)
class UsageWarning:
    level: str
    message: str
    percentage: float


class UsageGovernor:
    """Track and gate calls to the metered Maps APIs.

    The read-check-increment-persist sequence of ``check_and_record`` runs
    under a lock and never waits on I/O other than the local store, so two
    callers can never both be admitted on the same pre-increment count.
    """

    def __init__(self, store: QuotaStore, limits: Limits, tracker: Optional[WindowTracker] = None):
        self.store = store
        self.policy = ThresholdPolicy(limits)
        self.tracker = tracker or WindowTracker()
        self._lock = threading.RLock()
        self._snapshot: Optional[UsageSnapshot] = None

    def _current(self, now: Optional[datetime] = None) -> UsageSnapshot:
        """Load on first use, then roll windows as of ``now`` (caller holds the lock)."""

        now = now or self.tracker.now()
        if self._snapshot is None:
            loaded = self.store.load()
            if loaded is None:
                logger.info("No usable usage snapshot found; starting from zero")
                self._snapshot = UsageSnapshot.empty(now)
                self.store.save(self._snapshot)
            else:
                self._snapshot = loaded

        if self.tracker.roll(self._snapshot, now):
            self.store.save(self._snapshot)
        return self._snapshot

    def check_and_record(self, category: str) -> Admission:
        """Admit and count one call to ``category``, or refuse it without counting."""

        self.policy.ceiling(category)
        with self._lock:
            now = self.tracker.now()
            snapshot = self._current(now)
            usage = snapshot.usage(category)
            admission = self.policy.evaluate(category, usage, self.tracker.projected(usage))
            if not admission.admitted:
                logger.warning(
                    "Denied %s call: %s window full (day=%d)",
                    category,
                    ",".join(admission.breached),
                    usage.day,
                )
                return admission

            self.tracker.commit(usage, now)
            self.store.save(snapshot)

        logger.debug("Admitted %s call (remaining=%s)", category, admission.remaining.as_dict())
        return admission

    def remaining(self, category: str) -> Headroom:
        self.policy.ceiling(category)
        with self._lock:
            return self.policy.headroom(category, self._current().usage(category))

    def snapshot(self) -> UsageSnapshot:
        """Copy of the current snapshot with elapsed windows already reset."""

        with self._lock:
            return self._current().copy()

    def reset(self) -> UsageSnapshot:
        with self._lock:
            self._snapshot = UsageSnapshot.empty(self.tracker.now())
            self.store.save(self._snapshot)
            logger.info("Usage counters reset")
            return self._snapshot.copy()

    def reload(self) -> None:
        """Forget in-memory state; the next access re-reads the store."""

        with self._lock:
            self._snapshot = None

    def call(self, category: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        admission = self.check_and_record(category)
        if not admission.admitted:
            raise QuotaLimitError(category, admission.breached)
        return fn(*args, **kwargs)

    def usage_stats(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        snapshot = self.snapshot()
        stats: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for category, ceiling in self.policy.limits.items():
            used = snapshot.usage(category).day
            limit = ceiling.day
            percentage = used * 100 / limit if limit else 0.0
            stats[category] = {"daily": {"used": used, "limit": limit, "percentage": percentage}}
        return stats

    def usage_warning(self) -> Optional[UsageWarning]:
        stats = self.usage_stats()
        if not stats:
            return None
        highest = max(entry["daily"]["percentage"] for entry in stats.values())

        if highest >= WARNING_THRESHOLDS["blocked"]:
            return UsageWarning("blocked", "You've reached your daily API limit", 100.0)
        if highest >= WARNING_THRESHOLDS["critical"]:
            return UsageWarning("critical", f"You're at {round(highest)}% of your daily limit", highest)
        if highest >= WARNING_THRESHOLDS["warning"]:
            return UsageWarning("warning", f"{round(highest)}% of daily limit used", highest)
        return None
