from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .config import Ceiling, Limits
from .models import CATEGORIES, WINDOWS, CategoryUsage


class QuotaLimitError(RuntimeError):
    """Raised when a call was refused because a quota window is full."""

    def __init__(self, category: str, breached: Tuple[str, ...]):
        super().__init__(
            f"Quota exceeded for {category}: {', '.join(breached)} limit reached"
        )
        self.category = category
        self.breached = breached


class UnknownCategoryError(ValueError):
    """Raised for an API category that has no configured ceilings."""


@dataclass(frozen=True)
class Headroom:
    """Calls still available per window; ``None`` when the window is unbounded."""

    second: Optional[int] = None
    minute: Optional[int] = None
    day: Optional[int] = None

    def as_dict(self) -> Dict[str, Optional[int]]:
        return {"second": self.second, "minute": self.minute, "day": self.day}


@dataclass(frozen=True)
class Admission:
    admitted: bool
    remaining: Headroom
    breached: Tuple[str, ...] = field(default_factory=tuple)

    def as_dict(self) -> Dict[str, object]:
        return {
            "admitted": self.admitted,
            "remaining": self.remaining.as_dict(),
            "breached": list(self.breached),
        }


class ThresholdPolicy:
    """Admission rule over per-category ceilings.

    A call is admitted only when every window would stay at or below its
    ceiling after counting it.
    """

    def __init__(self, limits: Limits):
        unknown = [name for name in limits if name not in CATEGORIES]
        if unknown:
            raise UnknownCategoryError(f"Unknown API categories: {', '.join(unknown)}")
        self.limits = dict(limits)

    def ceiling(self, category: str) -> Ceiling:
        try:
            return self.limits[category]
        except KeyError:
            raise UnknownCategoryError(f"Unknown API category: {category!r}") from None

    def evaluate(self, category: str, current: CategoryUsage, projected: CategoryUsage) -> Admission:
        ceiling = self.ceiling(category)
        breached = tuple(
            window
            for window in WINDOWS
            if ceiling.limit(window) is not None and projected.count(window) > ceiling.limit(window)
        )
        admitted = not breached
        basis = projected if admitted else current
        return Admission(admitted=admitted, remaining=self.headroom(category, basis), breached=breached)

    def headroom(self, category: str, usage: CategoryUsage) -> Headroom:
        ceiling = self.ceiling(category)

        def left(window: str) -> Optional[int]:
            limit = ceiling.limit(window)
            if limit is None:
                return None
            return max(0, limit - usage.count(window))

        return Headroom(second=left("second"), minute=left("minute"), day=left("day"))
