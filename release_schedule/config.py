"""Configuration for the release schedule cache."""

import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

# Schedule source
LISTING_URL = "https://kpopofficial.com/category/kpop-comeback-schedule/"
SITE_HOST = "kpopofficial.com"
SCHEDULE_LINK_MARKER = "kpop-comeback-schedule-"

# Markup contract of the schedule pages
ROW_SELECTOR = "tr"
DATE_SELECTOR = "td.has-text-align-right mark"
TIME_SELECTOR = "td.has-text-align-right"
ARTIST_SELECTORS = [
    "td.has-text-align-left strong mark",
    "td.has-text-align-left strong",
]
DETAIL_SELECTOR = "td.has-text-align-left"
POSTPONED_MARKER = "postponed"

MONTHS = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)

# User agent for requests
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


class ConfigError(ValueError):
    """Raised when environment configuration is invalid."""

    pass


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"invalid {name}: {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"invalid {name}: {raw!r}")


@dataclass
class Settings:
    """Runtime settings, read once at startup."""

    max_concurrent_requests: int = 3
    max_retries: int = 3
    retry_initial_delay: float = 1.0
    retry_max_delay: float = 30.0
    retry_backoff_multiplier: float = 2.0
    request_delay: float = 3.0
    request_timeout: float = 30.0
    cache_ttl_active: float = 8 * 3600
    cache_ttl_inactive: float = 24 * 3600
    refresh_debounce_delay: float = 60.0
    refresh_interval: float = 8 * 3600
    pending_mark_timeout: float = 300.0
    refresh_timeout: float = 1800.0
    bucket_timeout: float = 600.0
    kst_offset_hours: int = -6
    schedule_year: int = field(default_factory=lambda: date.today().year)
    log_level: str = "INFO"
    output_dir: Path = Path("data/output")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment (and a .env file if present)."""
        load_dotenv()
        defaults = cls()
        settings = cls(
            max_concurrent_requests=_env_int(
                "MAX_CONCURRENT_REQUESTS", defaults.max_concurrent_requests
            ),
            max_retries=_env_int("MAX_RETRIES", defaults.max_retries),
            retry_initial_delay=_env_float(
                "RETRY_INITIAL_DELAY", defaults.retry_initial_delay
            ),
            retry_max_delay=_env_float("RETRY_MAX_DELAY", defaults.retry_max_delay),
            retry_backoff_multiplier=_env_float(
                "RETRY_BACKOFF_MULTIPLIER", defaults.retry_backoff_multiplier
            ),
            request_delay=_env_float("REQUEST_DELAY", defaults.request_delay),
            request_timeout=_env_float("REQUEST_TIMEOUT", defaults.request_timeout),
            cache_ttl_active=_env_float("CACHE_TTL_ACTIVE", defaults.cache_ttl_active),
            cache_ttl_inactive=_env_float(
                "CACHE_TTL_INACTIVE", defaults.cache_ttl_inactive
            ),
            refresh_debounce_delay=_env_float(
                "REFRESH_DEBOUNCE_DELAY", defaults.refresh_debounce_delay
            ),
            refresh_interval=_env_float("REFRESH_INTERVAL", defaults.refresh_interval),
            pending_mark_timeout=_env_float(
                "PENDING_MARK_TIMEOUT", defaults.pending_mark_timeout
            ),
            refresh_timeout=_env_float("REFRESH_TIMEOUT", defaults.refresh_timeout),
            bucket_timeout=_env_float("BUCKET_TIMEOUT", defaults.bucket_timeout),
            kst_offset_hours=_env_int("KST_OFFSET_HOURS", defaults.kst_offset_hours),
            schedule_year=_env_int("SCHEDULE_YEAR", defaults.schedule_year),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
            output_dir=Path(os.getenv("OUTPUT_DIR", str(defaults.output_dir))),
        )
        settings.validate()
        return settings

    def validate(self):
        """Reject settings the pipeline cannot run with."""
        if self.max_concurrent_requests < 1:
            raise ConfigError("MAX_CONCURRENT_REQUESTS must be at least 1")
        if self.max_retries < 1:
            raise ConfigError("MAX_RETRIES must be at least 1")
        if self.retry_backoff_multiplier < 1:
            raise ConfigError("RETRY_BACKOFF_MULTIPLIER must be >= 1")
        for name in (
            "retry_initial_delay",
            "retry_max_delay",
            "request_delay",
            "refresh_debounce_delay",
        ):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name.upper()} must not be negative")
        for name in (
            "request_timeout",
            "cache_ttl_active",
            "cache_ttl_inactive",
            "refresh_interval",
            "pending_mark_timeout",
            "refresh_timeout",
            "bucket_timeout",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name.upper()} must be positive")
        if not -23 <= self.kst_offset_hours <= 23:
            raise ConfigError("KST_OFFSET_HOURS must be within +/-23")
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"invalid LOG_LEVEL: {self.log_level}")
