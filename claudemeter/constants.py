"""Application-wide constants."""

from __future__ import annotations

# ── Cache ────────────────────────────────────────────────────────────────────

# Volatile cache TTL, just under the minimum refresh interval
CACHE_TTL_SECONDS = 55.0

# ── Network ──────────────────────────────────────────────────────────────────

MAX_RETRIES = 3
BACKOFF_BASE = 2.0
RATE_LIMIT_BACKOFF_BASE = 3.0

REQUEST_TIMEOUT_SECONDS = 30.0
CHALLENGE_TIMEOUT_SECONDS = 15.0
CHALLENGE_POLL_INTERVAL_SECONDS = 0.5
CHALLENGE_MAX_POLLS = 30

# ── Refresh ──────────────────────────────────────────────────────────────────

REFRESH_MIN_SECONDS = 60
REFRESH_MAX_SECONDS = 600
REFRESH_DEFAULT_SECONDS = 60
STALENESS_THRESHOLD_SECONDS = 2 * REFRESH_MAX_SECONDS

# Extra wall-clock drift tolerated across one timer sleep before it counts as a wake
WAKE_DRIFT_SECONDS = 30.0

# ── Pacing ───────────────────────────────────────────────────────────────────

SESSION_WINDOW_SECONDS = 5 * 60 * 60
WEEKLY_WINDOW_SECONDS = 7 * 24 * 60 * 60
RISK_THRESHOLD = 1.2

# ── Thresholds ───────────────────────────────────────────────────────────────

# Fixed status boundaries: safe < 50 <= warning < 80 <= critical
STATUS_WARNING_START = 50.0
STATUS_CRITICAL_START = 80.0

# User-configurable notification thresholds
WARNING_DEFAULT = 75.0
CRITICAL_DEFAULT = 90.0
WARNING_MIN = 50.0
WARNING_MAX = 90.0
CRITICAL_MIN = 75.0
CRITICAL_MAX = 100.0
THRESHOLD_STEP = 5.0

# Reset inference: previous reading at least this high, current at most this low
RESET_MIN_PREVIOUS_PERCENT = 10.0
RESET_NEAR_ZERO_PERCENT = 1.0

# ── Credentials ──────────────────────────────────────────────────────────────

DEFAULT_ACCOUNT = "default"
SESSION_KEY_PREFIX = "sk-ant-"
SESSION_KEY_MIN_LENGTH = 20
