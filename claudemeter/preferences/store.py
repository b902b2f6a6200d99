"""JSON-file settings store.

Holds two entries, ``app_settings`` and ``notification_state``. Unreadable
or invalid entries fall back to defaults on load; saves validate first
and propagate write errors to the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from claudemeter.fileio import write_json_atomic
from claudemeter.preferences.models import AppSettings, NotificationDedupState

logger = logging.getLogger(__name__)

SETTINGS_KEY = "app_settings"
NOTIFICATION_STATE_KEY = "notification_state"


class SettingsStore:
    """Serialized key-value store for preferences and dedup state."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> AppSettings:
        async with self._lock:
            entry = self._read().get(SETTINGS_KEY)
        if entry is None:
            return AppSettings()
        try:
            return AppSettings.model_validate(entry)
        except ValidationError as exc:
            logger.warning("Invalid stored settings, using defaults: %s", exc)
            return AppSettings()

    async def save(self, settings: AppSettings) -> None:
        # Re-validate: model_copy(update=...) skips validation
        validated = AppSettings.model_validate(settings.model_dump())
        await self._write_entry(SETTINGS_KEY, validated.model_dump(mode="json"))

    async def load_notification_state(self) -> NotificationDedupState:
        async with self._lock:
            entry = self._read().get(NOTIFICATION_STATE_KEY)
        if entry is None:
            return NotificationDedupState()
        try:
            return NotificationDedupState.model_validate(entry)
        except ValidationError as exc:
            logger.warning("Invalid notification state, resetting: %s", exc)
            return NotificationDedupState()

    async def save_notification_state(self, state: NotificationDedupState) -> None:
        await self._write_entry(NOTIFICATION_STATE_KEY, state.model_dump(mode="json"))

    # -- internals -------------------------------------------------------------

    async def _write_entry(self, key: str, value: Any) -> None:
        async with self._lock:
            data = self._read()
            data[key] = value
            write_json_atomic(self._path, data)

    def _read(self) -> dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable settings file %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}
