"""Notification sinks, where the gate's intents end up.

- LogSink: always available, writes to the log.
- WebhookSink: Slack incoming webhook and/or Telegram bot (httpx async).
- CompositeSink: fans out to several sinks.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import httpx

from claudemeter.notifications.intents import IntentKind, NotificationIntent

logger = logging.getLogger(__name__)

# Emoji/icon mapping
_EMOJI = {
    IntentKind.WARNING: "⚠️",
    IntentKind.CRITICAL: "🔴",
    IntentKind.RESET: "✅",
}


class NotificationSink(Protocol):
    async def check_permission(self) -> bool: ...

    async def deliver(self, intent: NotificationIntent) -> None: ...


def format_message(intent: NotificationIntent) -> str:
    return f"{_EMOJI[intent.kind]} *{intent.title}*\n{intent.body}\n"


class LogSink:
    """Writes intents to the log; never needs permission."""

    async def check_permission(self) -> bool:
        return True

    async def deliver(self, intent: NotificationIntent) -> None:
        level = logging.WARNING if intent.kind is IntentKind.CRITICAL else logging.INFO
        logger.log(level, "%s: %s", intent.title, intent.body)


class WebhookSink:
    """Posts intents to Slack and/or Telegram."""

    def __init__(
        self,
        slack_webhook: str = "",
        telegram_token: str = "",
        telegram_chat_id: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.slack_webhook = slack_webhook
        self.telegram_token = telegram_token
        self.telegram_chat_id = telegram_chat_id
        self._transport = transport

    @property
    def is_enabled(self) -> bool:
        return bool(self.slack_webhook or (self.telegram_token and self.telegram_chat_id))

    def status(self) -> dict[str, Any]:
        return {
            "enabled": self.is_enabled,
            "slack_configured": bool(self.slack_webhook),
            "telegram_configured": bool(self.telegram_token and self.telegram_chat_id),
        }

    async def check_permission(self) -> bool:
        return self.is_enabled

    async def deliver(self, intent: NotificationIntent) -> None:
        """Dispatch to all configured channels."""
        text = format_message(intent)
        tasks = []
        if self.slack_webhook:
            tasks.append(self._send_slack(text))
        if self.telegram_token and self.telegram_chat_id:
            tasks.append(self._send_telegram(text))
        if tasks:
            await asyncio.gather(*tasks)

    async def _send_slack(self, text: str) -> None:
        """POST to Slack incoming webhook."""
        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                resp = await client.post(self.slack_webhook, json={"text": text, "mrkdwn": True})
                if resp.status_code != 200:
                    logger.warning("Slack webhook returned %d: %s", resp.status_code, resp.text[:200])
        except httpx.HTTPError as exc:
            logger.warning("Slack notification failed: %s", exc)

    async def _send_telegram(self, text: str) -> None:
        """POST to Telegram Bot API."""
        url = f"https://api.telegram.org/bot{self.telegram_token}/sendMessage"
        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                resp = await client.post(
                    url,
                    json={
                        "chat_id": self.telegram_chat_id,
                        "text": text,
                        "parse_mode": "Markdown",
                    },
                )
                if resp.status_code != 200:
                    logger.warning("Telegram API returned %d: %s", resp.status_code, resp.text[:200])
        except httpx.HTTPError as exc:
            logger.warning("Telegram notification failed: %s", exc)


class CompositeSink:
    """Delivers to every child sink that has permission."""

    def __init__(self, *sinks: NotificationSink) -> None:
        self.sinks = list(sinks)

    async def check_permission(self) -> bool:
        for sink in self.sinks:
            if await sink.check_permission():
                return True
        return False

    async def deliver(self, intent: NotificationIntent) -> None:
        for sink in self.sinks:
            if await sink.check_permission():
                await sink.deliver(intent)
