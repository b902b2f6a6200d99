"""httpx-based transport for the claude.ai API.

All requests either return a decoded response or raise one of the
``TransportError`` subclasses from ``claudemeter.errors``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from claudemeter.constants import REQUEST_TIMEOUT_SECONDS
from claudemeter.credentials.session_key import SessionKey
from claudemeter.errors import (
    AuthenticationFailedError,
    HTTPStatusError,
    InvalidResponseError,
    NetworkUnavailableError,
    RateLimitExceededError,
    RequestTimeoutError,
)
from claudemeter.transport.base import browser_headers, decode_body, require_https

logger = logging.getLogger(__name__)


class DirectTransport:
    """Async httpx transport with an absolute per-request timeout."""

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        # Injected in tests (httpx.MockTransport); None means real network
        self._transport = transport

    async def request(
        self,
        endpoint: str,
        response_type: Any,
        credential: SessionKey,
        method: str = "GET",
    ) -> Any:
        url = require_https(endpoint)
        origin = f"{url.scheme}://{url.host}"

        try:
            resp = await asyncio.wait_for(
                self._send(method, endpoint, browser_headers(credential, origin)),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            raise RequestTimeoutError(f"Request to {endpoint} timed out after {self._timeout:.0f}s")
        except httpx.TimeoutException:
            raise RequestTimeoutError(f"Request to {endpoint} timed out")
        except (httpx.NetworkError, httpx.RemoteProtocolError, httpx.ProxyError) as exc:
            raise NetworkUnavailableError(f"Cannot reach {url.host}: {exc}")
        except httpx.HTTPError as exc:
            logger.error("Unusable response from %s: %r", endpoint, exc)
            raise InvalidResponseError(f"Unusable response from {url.host}: {exc}")

        if not resp.is_success:
            logger.error("HTTP %d from %s: %s", resp.status_code, endpoint, resp.text[:500])
            if resp.status_code == 401:
                raise AuthenticationFailedError()
            if resp.status_code == 429:
                raise RateLimitExceededError()
            raise HTTPStatusError(resp.status_code, resp.text[:200])

        return decode_body(resp.content, response_type, endpoint)

    async def aclose(self) -> None:
        """Nothing to release; clients are per-request."""

    async def _send(self, method: str, endpoint: str, headers: dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            return await client.request(method, endpoint, headers=headers)
