"""Session key parsing and validation.

Accepts either a bare ``sk-ant-...`` session key or a full cookie string
copied from the browser (``sessionKey=...; lastActiveOrg=...``). The
cookie form may carry the organization UUID, which saves a round-trip
during organization resolution.
"""

from __future__ import annotations

import re
import uuid

from claudemeter.constants import SESSION_KEY_MIN_LENGTH, SESSION_KEY_PREFIX
from claudemeter.errors import InvalidSessionKeyError

_KEY_RE = re.compile(r"^" + re.escape(SESSION_KEY_PREFIX) + r"[A-Za-z0-9_\-]+$")

# Cloudflare clearance cookies are bound to the browser's TLS fingerprint;
# replaying them from another client gets the request rejected.
_CF_COOKIE_KEYS = frozenset({"cf_clearance", "__cf_bm", "_cfuvid"})


def parse_cookie_string(raw: str) -> dict[str, str]:
    """Parse ``'key=val; key2=val2'`` or a bare session key value."""
    raw = raw.strip()
    if "=" not in raw:
        return {"sessionKey": raw}
    cookies: dict[str, str] = {}
    for part in raw.split(";"):
        part = part.strip()
        if "=" in part:
            k, _, v = part.partition("=")
            cookies[k.strip()] = v.strip()
    return cookies


class SessionKey:
    """A validated claude.ai session credential."""

    __slots__ = ("raw", "value", "cookies")

    def __init__(self, raw: str) -> None:
        if not raw or not raw.strip():
            raise InvalidSessionKeyError("Session key is empty")

        cookies = parse_cookie_string(raw)
        value = cookies.get("sessionKey", "")
        if len(value) < SESSION_KEY_MIN_LENGTH or not _KEY_RE.match(value):
            raise InvalidSessionKeyError(
                f"Session key must start with '{SESSION_KEY_PREFIX}' "
                f"and be at least {SESSION_KEY_MIN_LENGTH} characters"
            )

        self.raw = raw.strip()
        self.value = value
        self.cookies = {k: v for k, v in cookies.items() if k not in _CF_COOKIE_KEYS}

    @property
    def organization_id(self) -> str | None:
        """Organization UUID embedded in the cookie string, if any."""
        candidate = self.cookies.get("lastActiveOrg")
        if not candidate:
            return None
        try:
            return str(uuid.UUID(candidate))
        except ValueError:
            return None

    @property
    def cookie_header(self) -> str:
        return "; ".join(f"{k}={v}" for k, v in self.cookies.items())

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SessionKey) and other.raw == self.raw

    def __hash__(self) -> int:
        return hash(self.raw)

    def __repr__(self) -> str:
        return f"SessionKey('{self.value[:10]}…')"
