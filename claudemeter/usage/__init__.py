from claudemeter.usage.fetcher import (
    RetryKind,
    RetryOutcome,
    UsageFetcher,
    classify_failure,
)
from claudemeter.usage.organizations import select_organization

__all__ = [
    "RetryKind",
    "RetryOutcome",
    "UsageFetcher",
    "classify_failure",
    "select_organization",
]
