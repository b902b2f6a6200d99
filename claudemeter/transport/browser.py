"""Browser-engine transport for when Cloudflare blocks plain HTTP clients.

Loads the API endpoint in a headless Chromium page (real browser TLS
stack, JavaScript enabled) with the session key set as a cookie, then
polls the rendered text until it is a JSON payload rather than a bot
challenge page. From the caller's side it behaves like DirectTransport.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from claudemeter.constants import (
    CHALLENGE_MAX_POLLS,
    CHALLENGE_POLL_INTERVAL_SECONDS,
    CHALLENGE_TIMEOUT_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
)
from claudemeter.credentials.session_key import SessionKey
from claudemeter.errors import (
    AuthenticationFailedError,
    HTTPStatusError,
    NetworkUnavailableError,
    RateLimitExceededError,
    RequestTimeoutError,
)
from claudemeter.transport.base import decode_body, require_https

logger = logging.getLogger(__name__)

CHALLENGE_MARKERS = ("Just a moment", "Enable JavaScript", "Checking your browser")

# Raw JSON views render inside <pre>; otherwise fall back to the body text
_EXTRACT_SCRIPT = """
() => {
    const pre = document.querySelector('pre');
    if (pre) return pre.innerText;
    return document.body ? document.body.innerText : '';
}
"""

SAFARI_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/605.1.15"
)


class PageRenderer(Protocol):
    """Minimal page-engine surface the browser transport needs."""

    async def open(self, url: str, cookies: list[dict[str, Any]]) -> int | None:
        """Navigate to ``url`` with ``cookies`` set; return the HTTP status if known."""
        ...

    async def read_text(self) -> str: ...

    async def close(self) -> None: ...


def is_challenge_page(text: str) -> bool:
    return not text.strip() or any(marker in text for marker in CHALLENGE_MARKERS)


def looks_like_json(text: str) -> bool:
    trimmed = text.strip()
    return trimmed.startswith("[") or trimmed.startswith("{")


class PlaywrightRenderer:
    """PageRenderer backed by a lazily launched headless Chromium."""

    def __init__(self, headless: bool = True) -> None:
        self._headless = headless
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._page: Any = None

    async def open(self, url: str, cookies: list[dict[str, Any]]) -> int | None:
        page = await self._ensure_page()
        await self._context.add_cookies(cookies)
        try:
            response = await page.goto(url, wait_until="domcontentloaded")
        except Exception as exc:
            # playwright.async_api.Error covers DNS, refused and dropped connections
            raise NetworkUnavailableError(f"Page load failed: {exc}") from exc
        return response.status if response is not None else None

    async def read_text(self) -> str:
        page = await self._ensure_page()
        result = await page.evaluate(_EXTRACT_SCRIPT)
        return result if isinstance(result, str) else ""

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._playwright = self._browser = self._context = self._page = None

    async def _ensure_page(self) -> Any:
        if self._page is not None:
            return self._page
        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self._headless)
        self._context = await self._browser.new_context(user_agent=SAFARI_USER_AGENT)
        self._page = await self._context.new_page()
        logger.info("Headless browser started for API requests")
        return self._page


class BrowserTransport:
    """Transport that renders requests in a browser page to pass bot checks."""

    def __init__(
        self,
        renderer: PageRenderer | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        challenge_timeout: float = CHALLENGE_TIMEOUT_SECONDS,
        poll_interval: float = CHALLENGE_POLL_INTERVAL_SECONDS,
        max_polls: int = CHALLENGE_MAX_POLLS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._renderer = renderer or PlaywrightRenderer()
        self._timeout = timeout
        self._challenge_timeout = challenge_timeout
        self._poll_interval = poll_interval
        self._max_polls = max_polls
        self._sleep = sleep
        # One page, one navigation at a time
        self._lock = asyncio.Lock()

    async def request(
        self,
        endpoint: str,
        response_type: Any,
        credential: SessionKey,
        method: str = "GET",
    ) -> Any:
        url = require_https(endpoint)
        if method.upper() != "GET":
            raise HTTPStatusError(405, "Browser transport only performs page loads (GET)")

        cookies = [
            {
                "name": name,
                "value": value,
                "domain": f".{url.host}",
                "path": "/",
                "secure": True,
            }
            for name, value in credential.cookies.items()
        ]

        logger.info("Browser request to %s", endpoint)
        async with self._lock:
            try:
                text = await asyncio.wait_for(self._load(endpoint, cookies), timeout=self._timeout)
            except asyncio.TimeoutError:
                raise RequestTimeoutError(f"Browser request to {endpoint} timed out")

        return decode_body(text.strip(), response_type, endpoint)

    async def aclose(self) -> None:
        await self._renderer.close()

    async def _load(self, endpoint: str, cookies: list[dict[str, Any]]) -> str:
        status = await self._renderer.open(endpoint, cookies)
        if status == 401:
            raise AuthenticationFailedError()
        if status == 429:
            raise RateLimitExceededError()

        try:
            return await asyncio.wait_for(self._await_payload(), timeout=self._challenge_timeout)
        except asyncio.TimeoutError:
            raise RequestTimeoutError("Bot challenge did not clear in time")

    async def _await_payload(self) -> str:
        for attempt in range(1, self._max_polls + 1):
            text = await self._renderer.read_text()
            if looks_like_json(text) and not is_challenge_page(text):
                logger.debug("Extracted JSON payload after %d poll(s)", attempt)
                return text
            logger.info(
                "Waiting for bot challenge to complete (attempt %d/%d)", attempt, self._max_polls
            )
            if attempt < self._max_polls:
                await self._sleep(self._poll_interval)

        logger.error("Bot challenge did not complete after %d polls", self._max_polls)
        raise HTTPStatusError(403, "Bot challenge did not complete")
