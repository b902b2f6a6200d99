"""Tests for usage domain types."""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from claudemeter.constants import SESSION_WINDOW_SECONDS
from claudemeter.models import (
    Organization,
    UsageLimit,
    UsageSnapshot,
    UsageStatus,
    format_timestamp,
    parse_timestamp,
)
from claudemeter.transport.models import UsagePayload

from conftest import NOW, make_snapshot

WINDOW = timedelta(seconds=SESSION_WINDOW_SECONDS)


def limit_at(utilization: float, elapsed_fraction: float) -> UsageLimit:
    """A session limit observed ``elapsed_fraction`` of the way through its window."""
    window_start = NOW - WINDOW * elapsed_fraction
    return UsageLimit(utilization, window_start + WINDOW)


# ── Timestamps ───────────────────────────────────────────────────────────────


class TestTimestamps:
    def test_parse_z_suffix(self) -> None:
        assert parse_timestamp("2026-03-01T12:00:00Z") == NOW

    def test_naive_is_utc(self) -> None:
        assert parse_timestamp("2026-03-01T12:00:00").tzinfo is not None

    def test_format_uses_z(self) -> None:
        assert format_timestamp(NOW) == "2026-03-01T12:00:00Z"


# ── UsageLimit ───────────────────────────────────────────────────────────────


class TestUsageStatus:
    @pytest.mark.parametrize(
        "utilization, expected",
        [
            (0, UsageStatus.SAFE),
            (49.9, UsageStatus.SAFE),
            (50, UsageStatus.WARNING),
            (79.9, UsageStatus.WARNING),
            (80, UsageStatus.CRITICAL),
            (130, UsageStatus.CRITICAL),
        ],
    )
    def test_status_bands(self, utilization, expected) -> None:
        assert UsageLimit(utilization, NOW).status is expected

    def test_exceeded(self) -> None:
        assert UsageLimit(100, NOW).is_exceeded
        assert not UsageLimit(99.5, NOW).is_exceeded

    def test_resetting(self) -> None:
        past = NOW - timedelta(minutes=1)
        assert UsageLimit(12, past).is_resetting(NOW)
        assert not UsageLimit(0, past).is_resetting(NOW)
        assert not UsageLimit(12, NOW + timedelta(hours=1)).is_resetting(NOW)


class TestRisk:
    def test_half_used_quarter_elapsed(self) -> None:
        assert limit_at(50, 0.25).is_at_risk(SESSION_WINDOW_SECONDS, NOW)

    def test_half_used_half_elapsed(self) -> None:
        assert not limit_at(50, 0.5).is_at_risk(SESSION_WINDOW_SECONDS, NOW)

    def test_just_over_threshold(self) -> None:
        assert limit_at(65, 0.5).is_at_risk(SESSION_WINDOW_SECONDS, NOW)

    def test_exact_threshold_is_not_risk(self) -> None:
        # 60% used at 50% elapsed is a pace of exactly 1.2
        assert not limit_at(60, 0.5).is_at_risk(SESSION_WINDOW_SECONDS, NOW)

    def test_reset_already_passed(self) -> None:
        limit = UsageLimit(90, NOW - timedelta(seconds=1))
        assert not limit.is_at_risk(SESSION_WINDOW_SECONDS, NOW)

    def test_before_window_start(self) -> None:
        # reset further away than a whole window: nothing has elapsed yet
        limit = UsageLimit(90, NOW + WINDOW + timedelta(minutes=5))
        assert not limit.is_at_risk(SESSION_WINDOW_SECONDS, NOW)

    def test_utilization_clamped(self) -> None:
        # 150% counts as 100%; at 90% elapsed the pace is ~1.11
        assert not limit_at(150, 0.9).is_at_risk(SESSION_WINDOW_SECONDS, NOW)


# ── UsageSnapshot ────────────────────────────────────────────────────────────


class TestUsageSnapshot:
    def test_stale_after_twenty_minutes(self) -> None:
        snap = make_snapshot()
        assert not snap.is_stale(NOW + timedelta(minutes=20))
        assert snap.is_stale(NOW + timedelta(minutes=20, seconds=1))

    def test_primary_status_is_worst(self) -> None:
        assert make_snapshot(session=10, weekly=85).primary_status is UsageStatus.CRITICAL
        assert make_snapshot(session=60, weekly=5).primary_status is UsageStatus.WARNING

    def test_dict_round_trip_keeps_sonnet(self) -> None:
        snap = make_snapshot(sonnet=33.0)
        assert UsageSnapshot.from_dict(snap.to_dict()) == snap

    def test_from_dict_without_sonnet(self) -> None:
        data = make_snapshot().to_dict()
        data.pop("sonnet")
        assert UsageSnapshot.from_dict(data).sonnet is None


class TestUsagePayload:
    def test_accepts_api_window_names(self) -> None:
        payload = UsagePayload.model_validate({
            "five_hour": {"utilization": 42, "resets_at": "2026-03-01T14:00:00+00:00"},
            "seven_day": {"utilization": 7, "resets_at": "2026-03-05T00:00:00+00:00"},
            "seven_day_sonnet": {"utilization": 3, "resets_at": "2026-03-05T00:00:00+00:00"},
        })
        snap = payload.to_domain(NOW)
        assert snap.session.utilization == 42
        assert snap.sonnet is not None and snap.sonnet.utilization == 3
        assert snap.last_updated == NOW

    def test_accepts_short_names(self) -> None:
        payload = UsagePayload.model_validate({
            "session": {"utilization": 1, "reset_at": "2026-03-01T14:00:00"},
            "weekly": {"utilization": 2, "reset_at": "2026-03-05T00:00:00"},
        })
        snap = payload.to_domain()
        assert snap.sonnet is None
        assert snap.session.reset_at.tzinfo == timezone.utc


class TestOrganization:
    def test_chat_capability(self) -> None:
        org = Organization(id=1, uuid="not-a-uuid", name="x", capabilities=frozenset({"chat"}))
        assert org.has_chat_capability
        assert org.organization_uuid is None

    def test_canonical_uuid(self) -> None:
        org = Organization(id=1, uuid="6F1D2C3B4A5E4F608A7B9C0D1E2F3A4B", name="x")
        assert org.organization_uuid == "6f1d2c3b-4a5e-4f60-8a7b-9c0d1e2f3a4b"
