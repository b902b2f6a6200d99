"""Two-tier usage cache.

Tier 1 is an in-memory copy of the latest snapshot, valid for ``ttl``
seconds. Tier 2 is a JSON file on disk that survives restarts and is
read regardless of age when the network is down. Every write also
refreshes a public export file that external tools (statusline scripts
and the like) can read.

Disk failures are logged and swallowed: they must never block the
user-facing data flow.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from claudemeter.constants import CACHE_TTL_SECONDS
from claudemeter.fileio import write_json_atomic
from claudemeter.models import UsageSnapshot

logger = logging.getLogger(__name__)

DURABLE_FILENAME = "usage_cache.json"


class UsageCache:
    """Serialized two-tier cache for the latest UsageSnapshot."""

    def __init__(
        self,
        data_dir: Path | str,
        export_path: Path | str | None = None,
        ttl: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._durable_path = Path(data_dir) / DURABLE_FILENAME
        self._export_path = Path(export_path) if export_path else None
        self._ttl = ttl
        self._clock = clock
        self._lock = asyncio.Lock()
        self._memory: UsageSnapshot | None = None
        self._stored_at: float | None = None

    @property
    def durable_path(self) -> Path:
        return self._durable_path

    async def get(self) -> UsageSnapshot | None:
        """Return the in-memory snapshot while it is younger than the TTL."""
        async with self._lock:
            if self._memory is None or self._stored_at is None:
                return None
            if self._clock() - self._stored_at < self._ttl:
                logger.debug("Usage cache hit")
                return self._memory
            return None

    async def set(self, snapshot: UsageSnapshot) -> None:
        async with self._lock:
            self._memory = snapshot
            self._stored_at = self._clock()
            payload = snapshot.to_dict()
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._persist, payload)

    async def invalidate(self) -> None:
        """Drop the in-memory snapshot; the durable copy stays."""
        async with self._lock:
            self._memory = None
            self._stored_at = None

    async def get_last_known(self) -> UsageSnapshot | None:
        """Durable snapshot regardless of age, for offline fallback."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, self._load_durable)

    # -- disk ------------------------------------------------------------------

    def _persist(self, payload: dict[str, Any]) -> None:
        try:
            write_json_atomic(self._durable_path, payload)
        except OSError as exc:
            logger.warning("Failed to write usage cache %s: %s", self._durable_path, exc)

        if self._export_path is not None:
            try:
                write_json_atomic(self._export_path, payload, pretty=True)
            except OSError as exc:
                logger.warning("Failed to write usage export %s: %s", self._export_path, exc)

    def _load_durable(self) -> UsageSnapshot | None:
        try:
            raw = self._durable_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Failed to read usage cache %s: %s", self._durable_path, exc)
            return None

        try:
            return UsageSnapshot.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding corrupt usage cache %s: %s", self._durable_path, exc)
            return None
