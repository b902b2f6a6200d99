"""Application coordinator.

Owns the current snapshot, error message and preferences, and wires the
fetcher, notification gate and refresh scheduler together. Interested
parties (CLI, local API) register ``on_update`` callbacks instead of
listening on a global event bus.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from claudemeter.cache.repository import UsageCache
from claudemeter.config import Settings
from claudemeter.constants import DEFAULT_ACCOUNT, SESSION_WINDOW_SECONDS, WEEKLY_WINDOW_SECONDS
from claudemeter.credentials.session_key import SessionKey
from claudemeter.credentials.store import FileSecretStore, SecretStore
from claudemeter.errors import MeterError
from claudemeter.models import UsageLimit, UsageSnapshot, format_timestamp, utcnow
from claudemeter.notifications import NotificationGate, build_sink
from claudemeter.notifications.intents import IntentKind, NotificationIntent
from claudemeter.preferences.models import AppSettings
from claudemeter.preferences.store import SettingsStore
from claudemeter.scheduler import RefreshScheduler
from claudemeter.transport import build_transport
from claudemeter.usage.fetcher import UsageFetcher
from claudemeter.usage.organizations import select_organization

logger = logging.getLogger(__name__)

UpdateCallback = Callable[["UsageMeter"], Any]


def _limit_view(limit: UsageLimit | None, window_seconds: float) -> dict[str, Any] | None:
    if limit is None:
        return None
    return {
        **limit.to_dict(),
        "status": limit.status.value,
        "is_exceeded": limit.is_exceeded,
        "is_resetting": limit.is_resetting(),
        "is_at_risk": limit.is_at_risk(window_seconds),
    }


class UsageMeter:
    """Top-level state holder for one account."""

    def __init__(
        self,
        fetcher: UsageFetcher,
        gate: NotificationGate,
        settings_store: SettingsStore,
        secrets: SecretStore,
        account: str = DEFAULT_ACCOUNT,
    ) -> None:
        self.fetcher = fetcher
        self.gate = gate
        self.settings_store = settings_store
        self.secrets = secrets
        self.account = account

        self.settings = AppSettings()
        self.snapshot: UsageSnapshot | None = None
        self.error_message: str | None = None
        self.is_setup_complete = False
        self.is_refreshing = False
        self.scheduler = RefreshScheduler(self.refresh, interval=self.settings.refresh_interval)
        self._listeners: list[UpdateCallback] = []

    def on_update(self, callback: UpdateCallback) -> None:
        """Register a callback invoked after every refresh attempt."""
        self._listeners.append(callback)

    # -- lifecycle -------------------------------------------------------------

    async def load(self) -> None:
        """Read preferences and credential presence without touching the network."""
        self.settings = await self.settings_store.load()
        self.scheduler.interval = self.settings.refresh_interval
        self.is_setup_complete = self.secrets.exists(self.account)

    async def bootstrap(self) -> None:
        """Load preferences; if a credential exists, fetch now and start the timer."""
        await self.load()

        if self.is_setup_complete:
            await self.refresh(force=True)
            await self.scheduler.start()
        else:
            logger.info("No session key stored, run `claudemeter login` first")

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        await self.fetcher.transport.aclose()

    # -- usage -----------------------------------------------------------------

    async def refresh(self, force: bool = False) -> UsageSnapshot | None:
        """Fetch usage, evaluate notifications, notify listeners."""
        if not self.is_setup_complete:
            self.snapshot = None
            return None
        if self.is_refreshing:
            return self.snapshot

        self.is_refreshing = True
        self.error_message = None
        try:
            snapshot = await self.fetcher.fetch(force_refresh=force)
            self.snapshot = snapshot
            await self.gate.evaluate(snapshot, self.settings)
        except MeterError as exc:
            self.error_message = str(exc)
            logger.warning("Usage refresh failed: %s", exc)
        finally:
            self.is_refreshing = False

        self._emit()
        return self.snapshot

    # -- credential ------------------------------------------------------------

    async def save_credential(self, raw: str) -> bool:
        """Validate and store a session key. Returns False when the server rejects it."""
        credential = SessionKey(raw)
        if not await self.fetcher.validate_credential(credential):
            return False

        organizations = await self.fetcher.fetch_organizations(credential)
        org_id = select_organization(organizations)

        self.secrets.set(self.account, credential.raw)
        await self._modify_settings(cached_organization_id=org_id)
        self.is_setup_complete = True

        await self.refresh(force=True)
        await self.scheduler.start()
        return True

    async def clear_credential(self) -> None:
        """Forget the session key and the organization resolved for it."""
        self.secrets.delete(self.account)
        await self._modify_settings(cached_organization_id=None)
        self.is_setup_complete = False
        self.snapshot = None
        self.error_message = None
        await self.scheduler.stop()
        await self.fetcher.cache.invalidate()

    # -- settings --------------------------------------------------------------

    async def update_settings(self, **changes: Any) -> AppSettings:
        """Validate and save preference changes; restart the timer if the interval changed."""
        previous_interval = self.settings.refresh_interval
        new_settings = await self._modify_settings(**changes)

        if new_settings.refresh_interval != previous_interval and self.scheduler.is_running:
            await self.scheduler.restart(new_settings.refresh_interval)
        else:
            self.scheduler.interval = new_settings.refresh_interval
        return new_settings

    async def send_test_notification(self) -> NotificationIntent:
        intent = NotificationIntent(
            IntentKind.WARNING, 85.0, reset_at=utcnow() + timedelta(hours=1)
        )
        await self.gate.sink.deliver(intent)
        return intent

    def status(self) -> dict[str, Any]:
        snap = self.snapshot
        return {
            "setup_complete": self.is_setup_complete,
            "refreshing": self.is_refreshing,
            "error": self.error_message,
            "scheduler": {
                "running": self.scheduler.is_running,
                "interval": self.scheduler.interval,
                "ticks": self.scheduler.ticks,
                "wakes": self.scheduler.wakes,
            },
            "usage": None if snap is None else {
                "session": _limit_view(snap.session, SESSION_WINDOW_SECONDS),
                "weekly": _limit_view(snap.weekly, WEEKLY_WINDOW_SECONDS),
                "sonnet": _limit_view(snap.sonnet, WEEKLY_WINDOW_SECONDS),
                "status": snap.primary_status.value,
                "last_updated": format_timestamp(snap.last_updated),
                "is_stale": snap.is_stale(),
            },
        }

    # -- internals -------------------------------------------------------------

    async def _modify_settings(self, **changes: Any) -> AppSettings:
        """Read-modify-write against the store; the fetcher may have cached an org id since we last loaded."""
        data = (await self.settings_store.load()).model_dump()
        thresholds = changes.pop("notification_thresholds", None)
        if isinstance(thresholds, dict):
            data["notification_thresholds"].update(thresholds)
        elif thresholds is not None:
            data["notification_thresholds"] = thresholds
        data.update(changes)
        new_settings = AppSettings.model_validate(data)

        await self.settings_store.save(new_settings)
        self.settings = new_settings
        return new_settings

    def _emit(self) -> None:
        for callback in self._listeners:
            try:
                callback(self)
            except Exception:
                logger.exception("Update callback error")


def create_meter(cfg: Settings) -> UsageMeter:
    """Build a UsageMeter with file-backed stores from process configuration."""
    settings_store = SettingsStore(cfg.data_dir / "settings.json")
    secrets = FileSecretStore(cfg.resolved_secrets_file)
    cache = UsageCache(cfg.data_dir, export_path=cfg.export_path)
    fetcher = UsageFetcher(
        transport=build_transport(cfg),
        cache=cache,
        secrets=secrets,
        settings_store=settings_store,
        base_url=cfg.api_base_url,
        account=cfg.credential_account,
    )
    gate = NotificationGate(settings_store, build_sink(cfg))
    return UsageMeter(fetcher, gate, settings_store, secrets, account=cfg.credential_account)
