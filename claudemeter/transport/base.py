"""Transport interface and helpers shared by the direct and browser transports."""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from claudemeter.credentials.session_key import SessionKey
from claudemeter.errors import DecodingFailedError, InvalidURLError

logger = logging.getLogger(__name__)

T = TypeVar("T")

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Transport(Protocol):
    """Performs one authenticated request and decodes the JSON body."""

    async def request(
        self,
        endpoint: str,
        response_type: Any,
        credential: SessionKey,
        method: str = "GET",
    ) -> Any: ...

    async def aclose(self) -> None: ...


def require_https(endpoint: str) -> httpx.URL:
    """Reject anything that is not an absolute https:// URL."""
    if not endpoint.startswith("https://"):
        raise InvalidURLError(f"Refusing non-HTTPS endpoint: {endpoint}")
    try:
        url = httpx.URL(endpoint)
    except (httpx.InvalidURL, ValueError) as exc:
        raise InvalidURLError(f"Invalid endpoint {endpoint}: {exc}") from exc
    if not url.host:
        raise InvalidURLError(f"Endpoint has no host: {endpoint}")
    return url


def browser_headers(credential: SessionKey, origin: str) -> dict[str, str]:
    """Header set that looks like a same-origin fetch from the web app."""
    return {
        "Cookie": credential.cookie_header,
        "Accept": "application/json",
        "User-Agent": BROWSER_USER_AGENT,
        "Referer": origin,
        "Origin": origin,
        "Sec-Fetch-Site": "same-origin",
        "Sec-Fetch-Mode": "cors",
        "Sec-Fetch-Dest": "empty",
    }


def decode_body(body: str | bytes, response_type: type[T] | Any, endpoint: str) -> T:
    try:
        return TypeAdapter(response_type).validate_json(body)
    except ValidationError as exc:
        preview = body[:500] if isinstance(body, str) else body[:500].decode("utf-8", "replace")
        logger.error("Failed to decode response from %s: %s\nResponse: %s", endpoint, exc, preview)
        raise DecodingFailedError(str(exc)) from exc
