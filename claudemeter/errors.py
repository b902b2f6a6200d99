"""Error taxonomy.

Transport errors describe what happened to one HTTP request. Meter errors
are what the fetch pipeline surfaces to its caller after retry policy has
been applied.
"""

from __future__ import annotations


# ── Transport errors ─────────────────────────────────────────────────────────


class TransportError(Exception):
    """Base class for failures of a single transport request."""


class InvalidURLError(TransportError):
    """Raised for malformed or non-HTTPS endpoints, before any I/O."""


class InvalidResponseError(TransportError):
    """Raised when the server (or rendered page) returns something unusable."""


class AuthenticationFailedError(TransportError):
    """Raised on HTTP 401; the session key is invalid or expired."""

    def __init__(self) -> None:
        super().__init__("Session key is invalid or expired")


class RateLimitExceededError(TransportError):
    """Raised on HTTP 429."""

    def __init__(self) -> None:
        super().__init__("Rate limit exceeded. Please wait before retrying.")


class HTTPStatusError(TransportError):
    """Raised on any other non-2xx status."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Server error (status {status_code})")


class DecodingFailedError(TransportError):
    """Raised when a 2xx body does not match the expected shape."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("Failed to parse server response")


class NetworkUnavailableError(TransportError):
    """Raised when the host cannot be reached or the connection drops."""

    def __init__(self, detail: str = "No internet connection") -> None:
        super().__init__(detail)


class RequestTimeoutError(TransportError):
    """Raised when a request exceeds its wall-clock timeout."""

    def __init__(self, detail: str = "Request timed out") -> None:
        super().__init__(detail)


# ── Meter errors ─────────────────────────────────────────────────────────────


class MeterError(Exception):
    """Base class for errors surfaced by the usage pipeline."""


class NoSessionCredentialError(MeterError):
    def __init__(self) -> None:
        super().__init__("No session key configured")


class CredentialInvalidError(MeterError):
    def __init__(self, detail: str = "Session key is invalid or expired") -> None:
        super().__init__(detail)


class InvalidSessionKeyError(CredentialInvalidError):
    """Raised when a session key does not have a recognised format."""


class OrganizationNotFoundError(MeterError):
    def __init__(self) -> None:
        super().__init__("No organization found for this account")


class UsageFetchError(MeterError):
    """Network failure surfaced after retry policy (or immediately for non-retryable errors)."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(str(cause))


class SecretNotFoundError(MeterError):
    """Raised by a secret store when no credential exists for the account."""

    def __init__(self, account: str) -> None:
        self.account = account
        super().__init__(f"No credential stored for account '{account}'")
