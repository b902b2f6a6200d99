from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Process configuration loaded from environment / .env file.

    User-editable preferences (refresh interval, thresholds) live in the
    settings file managed by ``claudemeter.preferences``, not here.
    """

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "CLAUDEMETER_",
        "extra": "ignore",
    }

    # claude.ai account API
    api_base_url: str = "https://claude.ai/api"

    # Transport: "direct" (httpx) | "browser" (headless Chromium via Playwright)
    transport: str = "direct"
    request_timeout: float = 30.0
    challenge_timeout: float = 15.0

    # Storage
    data_dir: Path = Path.home() / ".local" / "share" / "claudemeter"
    export_path: Path = Path.home() / ".claudemeter" / "usage.json"  # read by statusline scripts etc.
    secrets_file: Path | None = None  # defaults to <data_dir>/secrets.json
    credential_account: str = "default"

    # Local API
    api_host: str = "127.0.0.1"
    api_port: int = 8765

    # Logging
    log_level: str = "INFO"

    # Notifications (optional Slack / Telegram; log sink is always on)
    slack_webhook_url: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    @property
    def resolved_secrets_file(self) -> Path:
        return self.secrets_file or self.data_dir / "secrets.json"


settings = Settings()
