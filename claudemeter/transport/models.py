"""Pydantic models for claude.ai API responses."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import AliasChoices, BaseModel, Field

from claudemeter.models import Organization, UsageLimit, UsageSnapshot, utcnow


class OrganizationPayload(BaseModel):
    id: int
    uuid: str
    name: str
    capabilities: list[str] | None = None

    def to_domain(self) -> Organization:
        return Organization(
            id=self.id,
            uuid=self.uuid,
            name=self.name,
            capabilities=frozenset(self.capabilities or ()),
        )


class UsageWindowPayload(BaseModel):
    utilization: float
    reset_at: datetime = Field(validation_alias=AliasChoices("reset_at", "resets_at"))

    def to_domain(self) -> UsageLimit:
        reset_at = self.reset_at
        if reset_at.tzinfo is None:
            reset_at = reset_at.replace(tzinfo=timezone.utc)
        return UsageLimit(utilization=self.utilization, reset_at=reset_at)


class UsagePayload(BaseModel):
    """GET /organizations/{uuid}/usage.

    The live API names its windows five_hour / seven_day / seven_day_sonnet;
    both spellings are accepted.
    """

    session: UsageWindowPayload = Field(validation_alias=AliasChoices("session", "five_hour"))
    weekly: UsageWindowPayload = Field(validation_alias=AliasChoices("weekly", "seven_day"))
    sonnet: UsageWindowPayload | None = Field(
        default=None, validation_alias=AliasChoices("sonnet", "seven_day_sonnet")
    )

    def to_domain(self, now: datetime | None = None) -> UsageSnapshot:
        return UsageSnapshot(
            session=self.session.to_domain(),
            weekly=self.weekly.to_domain(),
            sonnet=self.sonnet.to_domain() if self.sonnet else None,
            last_updated=now or utcnow(),
        )
