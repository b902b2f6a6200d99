"""Usage fetch pipeline: credential, cache, organization, transport with retry.

Retry policy per attempt:
- network unavailable / timeout → sleep BACKOFF_BASE ** attempt, retry
- rate limited (429)            → sleep RATE_LIMIT_BACKOFF_BASE ** attempt, retry
- authentication failed (401)   → CredentialInvalidError, no retry
- anything else                 → UsageFetchError, no retry

When every attempt fails with a retryable error, the durable cache copy
is returned if there is one (stale but useful); otherwise the last error
is raised as UsageFetchError.

Only one fetch runs at a time per fetcher. Calls that arrive while a
fetch is in flight wait for it and share its result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from claudemeter.cache.repository import UsageCache
from claudemeter.constants import (
    BACKOFF_BASE,
    DEFAULT_ACCOUNT,
    MAX_RETRIES,
    RATE_LIMIT_BACKOFF_BASE,
)
from claudemeter.credentials.session_key import SessionKey
from claudemeter.credentials.store import SecretStore
from claudemeter.errors import (
    AuthenticationFailedError,
    CredentialInvalidError,
    NetworkUnavailableError,
    NoSessionCredentialError,
    RateLimitExceededError,
    RequestTimeoutError,
    SecretNotFoundError,
    TransportError,
    UsageFetchError,
)
from claudemeter.models import Organization, UsageSnapshot
from claudemeter.preferences.store import SettingsStore
from claudemeter.transport.base import Transport
from claudemeter.transport.models import OrganizationPayload, UsagePayload
from claudemeter.usage.organizations import select_organization

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://claude.ai/api"


class RetryKind(str, Enum):
    RETRYABLE_NETWORK = "retryable_network"
    RETRYABLE_RATE_LIMIT = "retryable_rate_limit"
    FATAL_AUTH = "fatal_auth"
    FATAL_OTHER = "fatal_other"


@dataclass(frozen=True)
class RetryOutcome:
    """Classification of one failed attempt."""

    kind: RetryKind
    attempt: int

    @property
    def retryable(self) -> bool:
        return self.kind in (RetryKind.RETRYABLE_NETWORK, RetryKind.RETRYABLE_RATE_LIMIT)

    @property
    def delay(self) -> float:
        if self.kind is RetryKind.RETRYABLE_RATE_LIMIT:
            return RATE_LIMIT_BACKOFF_BASE ** self.attempt
        return BACKOFF_BASE ** self.attempt


def classify_failure(exc: BaseException, attempt: int) -> RetryOutcome:
    if isinstance(exc, (NetworkUnavailableError, RequestTimeoutError)):
        kind = RetryKind.RETRYABLE_NETWORK
    elif isinstance(exc, RateLimitExceededError):
        kind = RetryKind.RETRYABLE_RATE_LIMIT
    elif isinstance(exc, AuthenticationFailedError):
        kind = RetryKind.FATAL_AUTH
    else:
        kind = RetryKind.FATAL_OTHER
    return RetryOutcome(kind=kind, attempt=attempt)


class UsageFetcher:
    """Fetches usage snapshots with caching, org resolution and backoff."""

    def __init__(
        self,
        transport: Transport,
        cache: UsageCache,
        secrets: SecretStore,
        settings_store: SettingsStore,
        base_url: str = DEFAULT_BASE_URL,
        account: str = DEFAULT_ACCOUNT,
        max_retries: int = MAX_RETRIES,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.cache = cache
        self.secrets = secrets
        self.settings_store = settings_store
        self.base_url = base_url.rstrip("/")
        self.account = account
        self.max_retries = max_retries
        self._sleep = sleep
        self._inflight: asyncio.Task[UsageSnapshot] | None = None

    @property
    def is_fetching(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def fetch(self, force_refresh: bool = False) -> UsageSnapshot:
        """Return current usage, from cache when fresh, else from the API."""
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            logger.debug("Joining in-flight usage fetch")
            try:
                return await asyncio.shield(inflight)
            except asyncio.CancelledError:
                if not inflight.cancelled():
                    raise
            # The caller that started the shared fetch was cancelled, not us
            logger.debug("In-flight usage fetch was cancelled by its owner, fetching again")
            return await self.fetch(force_refresh)

        task = asyncio.ensure_future(self._fetch(force_refresh))
        self._inflight = task
        try:
            # Not shielded: cancelling the caller cancels the fetch and any backoff sleep
            return await task
        finally:
            if self._inflight is task:
                self._inflight = None

    async def fetch_organizations(self, credential: SessionKey | None = None) -> list[Organization]:
        """List organizations for the given (or stored) credential. Transport errors propagate."""
        credential = credential or self._load_credential()
        payload = await self.transport.request(
            f"{self.base_url}/organizations", list[OrganizationPayload], credential
        )
        return [org.to_domain() for org in payload]

    async def validate_credential(self, credential: SessionKey) -> bool:
        """One organization-list request: False on 401, True on success, other errors propagate."""
        try:
            await self.transport.request(
                f"{self.base_url}/organizations", list[OrganizationPayload], credential
            )
        except AuthenticationFailedError:
            return False
        return True

    async def resolve_organization(self, credential: SessionKey) -> str:
        """Organization UUID: cached in settings, embedded in credential, or looked up."""
        settings = await self.settings_store.load()
        if settings.cached_organization_id:
            return settings.cached_organization_id

        if credential.organization_id:
            logger.debug("Using organization id embedded in credential")
            return credential.organization_id

        try:
            organizations = await self.fetch_organizations(credential)
        except AuthenticationFailedError as exc:
            raise CredentialInvalidError() from exc
        except TransportError as exc:
            logger.error("Organization lookup failed: %s", exc)
            raise UsageFetchError(exc) from exc

        org_id = select_organization(organizations)
        try:
            await self.settings_store.save(settings.model_copy(update={"cached_organization_id": org_id}))
        except OSError as exc:
            logger.warning("Could not cache organization id: %s", exc)
        logger.info("Resolved organization %s from %d candidate(s)", org_id, len(organizations))
        return org_id

    # -- internals -------------------------------------------------------------

    def _load_credential(self) -> SessionKey:
        try:
            raw = self.secrets.get(self.account)
        except SecretNotFoundError:
            raise NoSessionCredentialError()
        return SessionKey(raw)

    async def _fetch(self, force_refresh: bool) -> UsageSnapshot:
        credential = self._load_credential()

        if force_refresh:
            await self.cache.invalidate()

        cached = await self.cache.get()
        if cached is not None:
            return cached

        org_id = await self.resolve_organization(credential)
        endpoint = f"{self.base_url}/organizations/{org_id}/usage"

        last_error: Exception | None = None
        for attempt in range(self.max_retries):
            try:
                payload = await self.transport.request(endpoint, UsagePayload, credential)
            except Exception as exc:
                outcome = classify_failure(exc, attempt)
                if outcome.kind is RetryKind.FATAL_AUTH:
                    logger.error("Authentication failed - session key invalid")
                    raise CredentialInvalidError() from exc
                if not outcome.retryable:
                    logger.error("API request failed: %s", exc)
                    raise UsageFetchError(exc) from exc

                last_error = exc
                logger.warning(
                    "%s (attempt %d/%d)", exc, attempt + 1, self.max_retries,
                )
                if attempt + 1 < self.max_retries:
                    await self._sleep(outcome.delay)
                continue

            snapshot = payload.to_domain()
            await self.cache.set(snapshot)
            return snapshot

        last_known = await self.cache.get_last_known()
        if last_known is not None:
            logger.warning("All retries failed, using cached data from %s", last_known.last_updated)
            return last_known

        logger.error("All retries failed, no cached data available")
        raise UsageFetchError(last_error or NetworkUnavailableError())
