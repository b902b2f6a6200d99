"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from claudemeter.cache.repository import UsageCache
from claudemeter.credentials.session_key import SessionKey
from claudemeter.credentials.store import FileSecretStore
from claudemeter.models import UsageLimit, UsageSnapshot
from claudemeter.notifications.intents import NotificationIntent
from claudemeter.preferences.store import SettingsStore
from claudemeter.transport.models import OrganizationPayload, UsagePayload
from claudemeter.usage.fetcher import UsageFetcher

VALID_KEY = "sk-ant-REDACTED"
ORG_UUID = "6f1d2c3b-4a5e-4f60-8a7b-9c0d1e2f3a4b"
OTHER_ORG_UUID = "11111111-2222-4333-8444-555555555555"
BASE_URL = "https://claude.ai/api"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_snapshot(
    session: float = 10.0,
    weekly: float = 5.0,
    sonnet: float | None = None,
    reset_in: timedelta = timedelta(hours=2),
    last_updated: datetime | None = None,
) -> UsageSnapshot:
    reset_at = (last_updated or NOW) + reset_in
    return UsageSnapshot(
        session=UsageLimit(session, reset_at),
        weekly=UsageLimit(weekly, reset_at + timedelta(days=3)),
        sonnet=UsageLimit(sonnet, reset_at + timedelta(days=3)) if sonnet is not None else None,
        last_updated=last_updated or NOW,
    )


def usage_payload(session: float = 10.0, weekly: float = 5.0) -> UsagePayload:
    return UsagePayload.model_validate({
        "five_hour": {"utilization": session, "resets_at": "2026-03-01T14:00:00Z"},
        "seven_day": {"utilization": weekly, "resets_at": "2026-03-05T00:00:00Z"},
    })


def org_payload(uuid: str = ORG_UUID, capabilities: list[str] | None = None, id: int = 1) -> OrganizationPayload:
    return OrganizationPayload(id=id, uuid=uuid, name=f"org-{id}", capabilities=capabilities)


class ScriptedTransport:
    """Transport double: each endpoint answers from a queue of values or exceptions."""

    def __init__(self) -> None:
        self.scripts: dict[str, list[Any]] = {}
        self.calls: list[str] = []
        self.closed = False

    def script(self, suffix: str, *outcomes: Any) -> None:
        self.scripts.setdefault(suffix, []).extend(outcomes)

    def count(self, suffix: str) -> int:
        return sum(1 for endpoint in self.calls if endpoint.endswith(suffix))

    async def request(self, endpoint: str, response_type: Any, credential: SessionKey, method: str = "GET") -> Any:
        self.calls.append(endpoint)
        for suffix, queue in self.scripts.items():
            if endpoint.endswith(suffix) and queue:
                outcome = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(outcome, BaseException):
                    raise outcome
                if callable(outcome):
                    return await outcome()
                return outcome
        raise AssertionError(f"Unscripted request to {endpoint}")

    async def aclose(self) -> None:
        self.closed = True


class RecordingSink:
    def __init__(self, permitted: bool = True) -> None:
        self.permitted = permitted
        self.delivered: list[NotificationIntent] = []

    async def check_permission(self) -> bool:
        return self.permitted

    async def deliver(self, intent: NotificationIntent) -> None:
        self.delivered.append(intent)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def secrets(tmp_path) -> FileSecretStore:
    return FileSecretStore(tmp_path / "secrets.json")


@pytest.fixture
def stored_secrets(secrets) -> FileSecretStore:
    secrets.set("default", VALID_KEY)
    return secrets


@pytest.fixture
def settings_store(tmp_path) -> SettingsStore:
    return SettingsStore(tmp_path / "settings.json")


@pytest.fixture
def cache(tmp_path, clock) -> UsageCache:
    return UsageCache(tmp_path / "data", export_path=tmp_path / "export" / "usage.json", clock=clock)


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps) -> Callable[[float], Any]:
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
def fetcher(transport, cache, stored_secrets, settings_store, fake_sleep) -> UsageFetcher:
    return UsageFetcher(
        transport=transport,
        cache=cache,
        secrets=stored_secrets,
        settings_store=settings_store,
        base_url=BASE_URL,
        sleep=fake_sleep,
    )
