"""Secret storage: session keys by account name.

The OS keychain is out of reach for a portable tool, so credentials live
in a JSON file readable only by the owner.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from claudemeter.errors import SecretNotFoundError
from claudemeter.fileio import write_json_atomic

logger = logging.getLogger(__name__)


class SecretStore(Protocol):
    def exists(self, account: str) -> bool: ...

    def get(self, account: str) -> str: ...

    def set(self, account: str, secret: str) -> None: ...

    def delete(self, account: str) -> None: ...


class FileSecretStore:
    """Owner-only JSON file mapping account name → secret."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def exists(self, account: str) -> bool:
        return account in self._load()

    def get(self, account: str) -> str:
        secrets = self._load()
        if account not in secrets:
            raise SecretNotFoundError(account)
        return secrets[account]

    def set(self, account: str, secret: str) -> None:
        secrets = self._load()
        secrets[account] = secret
        self._save(secrets)
        logger.info("Stored credential for account '%s'", account)

    def delete(self, account: str) -> None:
        secrets = self._load()
        if secrets.pop(account, None) is not None:
            self._save(secrets)
            logger.info("Deleted credential for account '%s'", account)

    # -- internals -------------------------------------------------------------

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable secrets file %s: %s", self._path, exc)
            return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _save(self, secrets: dict[str, str]) -> None:
        write_json_atomic(self._path, secrets, mode=0o600)
