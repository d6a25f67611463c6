"""Turn a Maps failure into something a user can be shown.

Matching is a case-insensitive substring search over the error's text, with
groups tried in priority order; the first group that matches wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple


class ErrorCategory(Enum):
    QUOTA_EXCEEDED = "quota-exceeded"
    INVALID_API_KEY = "invalid-api-key"
    BILLING_ISSUE = "billing-issue"
    CONNECTIVITY_ISSUE = "connectivity-issue"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        """Whether the user can fix this by trying again later."""
        return self in (ErrorCategory.QUOTA_EXCEEDED, ErrorCategory.CONNECTIVITY_ISSUE, ErrorCategory.UNKNOWN)

    @property
    def needs_operator(self) -> bool:
        return self in (ErrorCategory.INVALID_API_KEY, ErrorCategory.BILLING_ISSUE)


@dataclass(frozen=True)
class ErrorDetails:
    title: str
    message: str
    icon: str
    category: ErrorCategory
    degraded_behavior: Optional[Tuple[str, ...]] = None

    @property
    def category_name(self) -> str:
        return self.category.value


QUOTA_DEGRADED_BEHAVIOR = (
    'The map may show "For development purposes only" watermarks',
    "Some features like search or directions might not work",
    "Already loaded maps will continue to display",
    "Service typically resets at midnight Pacific Time",
)

_KEYWORDS = (
    (ErrorCategory.QUOTA_EXCEEDED, ("quota", "limit exceeded")),
    (ErrorCategory.INVALID_API_KEY, ("api key", "invalid key")),
    (ErrorCategory.BILLING_ISSUE, ("billing", "payment")),
    (ErrorCategory.CONNECTIVITY_ISSUE, ("network", "connection")),
)

_DETAILS = {
    ErrorCategory.QUOTA_EXCEEDED: ErrorDetails(
        title="Daily Map Limit Reached",
        message=(
            "We've hit our daily Google Maps limit. The map may show watermarks "
            "or have limited functionality. Please try again tomorrow."
        ),
        icon="📊",
        category=ErrorCategory.QUOTA_EXCEEDED,
        degraded_behavior=QUOTA_DEGRADED_BEHAVIOR,
    ),
    ErrorCategory.INVALID_API_KEY: ErrorDetails(
        title="API Key Issue",
        message="There's a problem with the Google Maps API configuration. Please contact the site owner.",
        icon="🔑",
        category=ErrorCategory.INVALID_API_KEY,
    ),
    ErrorCategory.BILLING_ISSUE: ErrorDetails(
        title="Billing Issue",
        message="The Google Maps API billing needs attention. Please contact the site owner.",
        icon="💳",
        category=ErrorCategory.BILLING_ISSUE,
    ),
    ErrorCategory.CONNECTIVITY_ISSUE: ErrorDetails(
        title="Connection Problem",
        message="Unable to connect to Google Maps. Please check your internet connection.",
        icon="🌐",
        category=ErrorCategory.CONNECTIVITY_ISSUE,
    ),
    ErrorCategory.UNKNOWN: ErrorDetails(
        title="Maps Unavailable",
        message="Google Maps is temporarily unavailable. Please try again in a few moments.",
        icon="⚠️",
        category=ErrorCategory.UNKNOWN,
    ),
}

LOADING_STALL = ErrorDetails(
    title="Maps Loading Issue",
    message="The map is taking longer than expected to load.",
    icon="🗺️",
    category=ErrorCategory.UNKNOWN,
)


def classify(error: Any) -> ErrorDetails:
    """Map a raw error (exception, string, or None for a stalled load) to display details."""

    if error is None:
        return LOADING_STALL

    text = str(error).lower()
    for category, keywords in _KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return _DETAILS[category]
    return _DETAILS[ErrorCategory.UNKNOWN]
