"""Notification intents: what the gate asks a sink to show."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from claudemeter.models import utcnow


class IntentKind(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"
    RESET = "reset"


_TITLES = {
    IntentKind.WARNING: "Usage Warning",
    IntentKind.CRITICAL: "Critical Usage",
    IntentKind.RESET: "Session Reset",
}


def describe_reset(reset_at: datetime, now: datetime | None = None) -> str:
    """Short relative reset time, e.g. ``in 2h 5m``."""
    secs = (reset_at - (now or utcnow())).total_seconds()
    if secs <= 0:
        return "soon"
    hours, rem = divmod(int(secs), 3600)
    minutes = rem // 60
    if hours >= 24:
        return f"in {hours // 24}d {hours % 24}h"
    if hours > 0:
        return f"in {hours}h {minutes}m"
    return f"in {minutes}m"


@dataclass(frozen=True)
class NotificationIntent:
    kind: IntentKind
    percentage: float
    reset_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def title(self) -> str:
        return _TITLES[self.kind]

    @property
    def body(self) -> str:
        if self.kind is IntentKind.RESET:
            return "Your usage limits have been reset. Fresh capacity available!"
        when = describe_reset(self.reset_at, self.created_at) if self.reset_at else "soon"
        if self.kind is IntentKind.WARNING:
            return f"You've used {int(self.percentage)}% of your 5-hour session. Resets {when}"
        return f"Critical: {int(self.percentage)}% of session used. Resets {when}"
