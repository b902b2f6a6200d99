from __future__ import annotations

from claudemeter.config import Settings
from claudemeter.transport.base import Transport
from claudemeter.transport.browser import BrowserTransport, PageRenderer, PlaywrightRenderer
from claudemeter.transport.direct import DirectTransport


def build_transport(cfg: Settings) -> Transport:
    """Pick the transport named in configuration."""
    if cfg.transport == "browser":
        return BrowserTransport(timeout=cfg.request_timeout, challenge_timeout=cfg.challenge_timeout)
    if cfg.transport == "direct":
        return DirectTransport(timeout=cfg.request_timeout)
    raise ValueError(f"Unknown transport '{cfg.transport}' (expected 'direct' or 'browser')")


__all__ = [
    "BrowserTransport",
    "DirectTransport",
    "PageRenderer",
    "PlaywrightRenderer",
    "Transport",
    "build_transport",
]
