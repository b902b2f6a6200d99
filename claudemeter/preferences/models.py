"""User preferences and persisted notification state.

Range and step checks live here, at the settings-write boundary; the
notification gate trusts whatever thresholds it is given.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from claudemeter.constants import (
    CRITICAL_DEFAULT,
    CRITICAL_MAX,
    CRITICAL_MIN,
    REFRESH_DEFAULT_SECONDS,
    REFRESH_MAX_SECONDS,
    REFRESH_MIN_SECONDS,
    THRESHOLD_STEP,
    WARNING_DEFAULT,
    WARNING_MAX,
    WARNING_MIN,
)


class NotificationThresholds(BaseModel):
    warning_threshold: float = Field(WARNING_DEFAULT, ge=WARNING_MIN, le=WARNING_MAX)
    critical_threshold: float = Field(CRITICAL_DEFAULT, ge=CRITICAL_MIN, le=CRITICAL_MAX)
    notify_on_reset: bool = True

    @field_validator("warning_threshold", "critical_threshold")
    @classmethod
    def _on_step(cls, value: float) -> float:
        if value % THRESHOLD_STEP != 0:
            raise ValueError(f"must be a multiple of {THRESHOLD_STEP:g}")
        return value

    @model_validator(mode="after")
    def _critical_above_warning(self) -> "NotificationThresholds":
        if self.critical_threshold <= self.warning_threshold:
            raise ValueError("critical_threshold must be greater than warning_threshold")
        return self


class AppSettings(BaseModel):
    refresh_interval: int = Field(REFRESH_DEFAULT_SECONDS, ge=REFRESH_MIN_SECONDS, le=REFRESH_MAX_SECONDS)
    notifications_enabled: bool = True
    notification_thresholds: NotificationThresholds = Field(default_factory=NotificationThresholds)
    cached_organization_id: str | None = None


class NotificationDedupState(BaseModel):
    """What the notification gate has already told the user."""

    warning_fired: bool = False
    critical_fired: bool = False
    last_percentage: float | None = None
    last_reset_at: datetime | None = None
