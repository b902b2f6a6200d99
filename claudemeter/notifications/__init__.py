"""Usage threshold notifications.

Fires notifications on:
- session usage crossing the warning threshold
- session usage crossing the critical threshold
- the session window resetting

Each threshold fires once per crossing; dedup state is persisted.
"""

from __future__ import annotations

from claudemeter.config import Settings
from claudemeter.notifications.gate import NotificationGate, is_reset_observed
from claudemeter.notifications.intents import IntentKind, NotificationIntent
from claudemeter.notifications.sinks import (
    CompositeSink,
    LogSink,
    NotificationSink,
    WebhookSink,
)


def build_sink(cfg: Settings) -> NotificationSink:
    """Log sink, plus webhooks when any are configured."""
    webhook = WebhookSink(
        slack_webhook=cfg.slack_webhook_url,
        telegram_token=cfg.telegram_bot_token,
        telegram_chat_id=cfg.telegram_chat_id,
    )
    if webhook.is_enabled:
        return CompositeSink(LogSink(), webhook)
    return LogSink()


__all__ = [
    "CompositeSink",
    "IntentKind",
    "LogSink",
    "NotificationGate",
    "NotificationIntent",
    "NotificationSink",
    "WebhookSink",
    "build_sink",
    "is_reset_observed",
]
