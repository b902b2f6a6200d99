"""claudemeter: claude.ai usage monitor with retrying fetch, two-tier cache and threshold alerts."""

__version__ = "0.1.0"
