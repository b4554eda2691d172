# Environment-driven settings. main.py calls load_dotenv() before these are read.
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() == "true"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("Negative %s=%r, using %s", name, raw, default)
        return default
    return value


def is_demo_mode() -> bool:
    """True only when DEMO_MODE env var is explicitly 'true' (case-insensitive)."""
    return os.environ.get("DEMO_MODE", "").lower() == "true"


@dataclass(frozen=True)
class Settings:
    check_interval_seconds: float = 300.0
    recency_hours: float = 24.0
    email_delay_seconds: float = 1.0
    scheduler_enabled: bool = True
    toast_history: int = 50
    log_level: str = "INFO"


def load_settings() -> Settings:
    defaults = Settings()
    interval = _env_float("ALERT_CHECK_INTERVAL_SECONDS", defaults.check_interval_seconds)
    return Settings(
        check_interval_seconds=interval if interval > 0 else defaults.check_interval_seconds,
        recency_hours=_env_float("ALERT_RECENCY_HOURS", defaults.recency_hours),
        email_delay_seconds=_env_float("ALERT_EMAIL_DELAY_SECONDS", defaults.email_delay_seconds),
        scheduler_enabled=_env_bool("ALERT_SCHEDULER_ENABLED", defaults.scheduler_enabled),
        toast_history=max(1, int(_env_float("ALERT_TOAST_HISTORY", defaults.toast_history))),
        log_level=os.environ.get("LOG_LEVEL", defaults.log_level).upper(),
    )
