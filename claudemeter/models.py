"""Domain types: organizations, usage limits and snapshots."""

from __future__ import annotations

import uuid as _uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from claudemeter.constants import (
    RISK_THRESHOLD,
    STALENESS_THRESHOLD_SECONDS,
    STATUS_CRITICAL_START,
    STATUS_WARNING_START,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# ── Organization ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Organization:
    """A claude.ai organization the session belongs to."""

    id: int
    uuid: str
    name: str
    capabilities: frozenset[str] = field(default_factory=frozenset)

    @property
    def has_chat_capability(self) -> bool:
        return "chat" in self.capabilities

    @property
    def organization_uuid(self) -> str | None:
        """Canonical UUID string, or None when ``uuid`` does not parse."""
        try:
            return str(_uuid.UUID(self.uuid))
        except (ValueError, AttributeError, TypeError):
            return None


# ── Usage ────────────────────────────────────────────────────────────────────


class UsageStatus(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class UsageLimit:
    """A single usage window (session, weekly or Sonnet)."""

    utilization: float  # percent, 0-100+, not clamped
    reset_at: datetime

    @property
    def percentage(self) -> float:
        return self.utilization

    @property
    def status(self) -> UsageStatus:
        if self.utilization < STATUS_WARNING_START:
            return UsageStatus.SAFE
        if self.utilization < STATUS_CRITICAL_START:
            return UsageStatus.WARNING
        return UsageStatus.CRITICAL

    @property
    def is_exceeded(self) -> bool:
        return self.utilization >= 100

    def is_resetting(self, now: datetime | None = None) -> bool:
        """Reset time has passed but the server still reports usage."""
        now = now or utcnow()
        return self.reset_at < now and self.utilization > 0

    def is_at_risk(self, window_seconds: float, now: datetime | None = None) -> bool:
        """True when usage is outpacing elapsed time in the window by more than RISK_THRESHOLD."""
        now = now or utcnow()
        if self.reset_at <= now:
            return False

        window_start = self.reset_at.timestamp() - window_seconds
        elapsed = now.timestamp() - window_start
        if elapsed <= 0:
            return False

        time_elapsed_pct = elapsed / window_seconds
        usage_pct = min(self.utilization, 100.0) / 100.0
        return (usage_pct / time_elapsed_pct) > RISK_THRESHOLD

    def to_dict(self) -> dict[str, Any]:
        return {
            "utilization": self.utilization,
            "reset_at": format_timestamp(self.reset_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageLimit":
        return cls(
            utilization=float(data["utilization"]),
            reset_at=parse_timestamp(data["reset_at"]),
        )


@dataclass(frozen=True)
class UsageSnapshot:
    """One fetched-and-decoded usage measurement."""

    session: UsageLimit
    weekly: UsageLimit
    sonnet: UsageLimit | None = None
    last_updated: datetime = field(default_factory=utcnow)

    def is_stale(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return (now - self.last_updated).total_seconds() > STALENESS_THRESHOLD_SECONDS

    @property
    def primary_status(self) -> UsageStatus:
        """Worst status across session and weekly windows."""
        order = [UsageStatus.SAFE, UsageStatus.WARNING, UsageStatus.CRITICAL]
        return max(self.session.status, self.weekly.status, key=order.index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session": self.session.to_dict(),
            "weekly": self.weekly.to_dict(),
            "sonnet": self.sonnet.to_dict() if self.sonnet else None,
            "last_updated": format_timestamp(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageSnapshot":
        sonnet = data.get("sonnet")
        return cls(
            session=UsageLimit.from_dict(data["session"]),
            weekly=UsageLimit.from_dict(data["weekly"]),
            sonnet=UsageLimit.from_dict(sonnet) if sonnet else None,
            last_updated=parse_timestamp(data["last_updated"]),
        )
