"""Threshold notification gate.

Turns each usage snapshot into at most one warning and one critical
notification per threshold crossing, plus a reset notification when the
session counter is seen to start over. Fired flags are persisted so a
restart does not repeat alerts.

Reset inference: the previous reading was at least
RESET_MIN_PREVIOUS_PERCENT, the current reading is at most
RESET_NEAR_ZERO_PERCENT, and the reset time recorded with the previous
reading has passed (or was never recorded).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from claudemeter.constants import RESET_MIN_PREVIOUS_PERCENT, RESET_NEAR_ZERO_PERCENT
from claudemeter.models import UsageSnapshot, utcnow
from claudemeter.notifications.intents import IntentKind, NotificationIntent
from claudemeter.notifications.sinks import NotificationSink
from claudemeter.preferences.models import AppSettings, NotificationDedupState
from claudemeter.preferences.store import SettingsStore

logger = logging.getLogger(__name__)


def is_reset_observed(state: NotificationDedupState, percentage: float, now: datetime) -> bool:
    if state.last_percentage is None or state.last_percentage < RESET_MIN_PREVIOUS_PERCENT:
        return False
    if percentage > RESET_NEAR_ZERO_PERCENT:
        return False
    return state.last_reset_at is None or state.last_reset_at <= now


class NotificationGate:
    """Evaluates snapshots against thresholds and dispatches intents to a sink."""

    def __init__(self, settings_store: SettingsStore, sink: NotificationSink) -> None:
        self.settings_store = settings_store
        self.sink = sink
        self._lock = asyncio.Lock()

    async def evaluate(
        self,
        snapshot: UsageSnapshot,
        settings: AppSettings,
        now: datetime | None = None,
    ) -> list[NotificationIntent]:
        """Emit due notifications and persist the updated dedup state."""
        now = now or utcnow()
        thresholds = settings.notification_thresholds
        percentage = snapshot.session.percentage

        async with self._lock:
            state = await self.settings_store.load_notification_state()
            enabled = settings.notifications_enabled and await self.sink.check_permission()

            intents: list[NotificationIntent] = []
            if (
                enabled
                and thresholds.warning_threshold <= percentage < thresholds.critical_threshold
                and not state.warning_fired
            ):
                intents.append(NotificationIntent(IntentKind.WARNING, percentage, snapshot.session.reset_at))
                state.warning_fired = True

            if enabled and percentage >= thresholds.critical_threshold and not state.critical_fired:
                intents.append(NotificationIntent(IntentKind.CRITICAL, percentage, snapshot.session.reset_at))
                state.critical_fired = True

            if enabled and thresholds.notify_on_reset and is_reset_observed(state, percentage, now):
                intents.append(NotificationIntent(IntentKind.RESET, percentage))

            # Re-arm once usage falls back below a threshold
            if percentage < thresholds.warning_threshold:
                state.warning_fired = False
            if percentage < thresholds.critical_threshold:
                state.critical_fired = False

            state.last_percentage = percentage
            state.last_reset_at = snapshot.session.reset_at

            # Saved before delivery: a delivery cut short by cancellation is not repeated
            try:
                await self.settings_store.save_notification_state(state)
            except OSError as exc:
                logger.warning("Failed to persist notification state: %s", exc)

            for intent in intents:
                await self._deliver(intent)

        return intents

    async def _deliver(self, intent: NotificationIntent) -> None:
        try:
            await self.sink.deliver(intent)
            logger.info("Notification sent: %s (%.0f%%)", intent.kind.value, intent.percentage)
        except Exception as exc:
            logger.warning("Notification delivery failed (%s): %s", intent.kind.value, exc)
