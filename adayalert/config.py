"""A-Day Alert — application configuration.

Loads .env variables into a typed config object.
Validates required variables on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


_REQUIRED_VARS = [
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
]

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    telegram_bot_token: str
    telegram_chat_id: str
    symbol: str
    min_confidence_score: int
    greeks_placeholder_score: float
    max_session_loss: float
    min_signal_gap_minutes: int
    expiry_weekday: int  # Monday=0 … Thursday=3
    lot_size: int
    premium_min: float
    premium_max: float
    detector_timeout_seconds: float
    force_analyze: bool
    poll_interval_seconds: int
    log_level: str
    health_port: int

    @property
    def telegram_base_url(self) -> str:
        """Return the Bot API base URL for the configured token."""
        return f"https://api.telegram.org/bot{self.telegram_bot_token}"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in _TRUTHY


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the missing variable when a
    required variable is absent.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    expiry_weekday = int(os.environ.get("EXPIRY_WEEKDAY", "3"))
    if not 0 <= expiry_weekday <= 4:
        raise ValueError(
            f"EXPIRY_WEEKDAY must be a trading weekday 0-4, got {expiry_weekday}"
        )

    return Config(
        telegram_bot_token=os.environ["TELEGRAM_BOT_TOKEN"],
        telegram_chat_id=os.environ["TELEGRAM_CHAT_ID"],
        symbol=os.environ.get("SYMBOL", "NIFTY 50"),
        min_confidence_score=int(os.environ.get("MIN_CONFIDENCE_SCORE", "60")),
        greeks_placeholder_score=float(
            os.environ.get("GREEKS_PLACEHOLDER_SCORE", "5")
        ),
        max_session_loss=float(os.environ.get("MAX_SESSION_LOSS", "300000")),
        min_signal_gap_minutes=int(os.environ.get("MIN_SIGNAL_GAP_MINUTES", "5")),
        expiry_weekday=expiry_weekday,
        lot_size=int(os.environ.get("LOT_SIZE", "25")),
        premium_min=float(os.environ.get("PREMIUM_MIN", "80")),
        premium_max=float(os.environ.get("PREMIUM_MAX", "150")),
        detector_timeout_seconds=float(
            os.environ.get("DETECTOR_TIMEOUT_SECONDS", "20")
        ),
        force_analyze=_env_bool("FORCE_ANALYZE"),
        poll_interval_seconds=int(os.environ.get("POLL_INTERVAL_SECONDS", "60")),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        health_port=int(os.environ.get("HEALTH_PORT", "8080")),
    )
