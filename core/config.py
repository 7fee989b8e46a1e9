"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the Blackpot auth service happen here. No
module should call os.getenv() or os.environ.get() directly -- import
get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  Fail fast: JWT_SECRET and DATABASE_URL are mandatory. get_settings() turns
      any validation failure into ConfigError so the process refuses to start
      with one readable message instead of a pydantic error dump.

Security notes:
  [M6] JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing
       relies on key entropy -- a short key weakens every issued token.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import re
from datetime import timedelta
from functools import lru_cache

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("blackpot.config")

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


class ConfigError(RuntimeError):
    """Fatal configuration problem detected at startup. The process must not start."""


def parse_duration(value: str) -> timedelta:
    """Parse an expiry string such as "24h", "7d", "15m", "30s" or "3600".

    A bare integer is read as seconds. Raises ValueError for anything else,
    including zero-length durations.
    """
    match = _DURATION_RE.match(str(value))
    if match is None:
        raise ValueError(f"Invalid duration {value!r}. Expected <number>[s|m|h|d].")
    amount, unit = match.groups()
    seconds = int(amount) * _DURATION_UNITS[unit]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive, got {value!r}.")
    return timedelta(seconds=seconds)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    jwt_secret and database_url have no usable default; everything else falls
    back to the values the service has always shipped with.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Defaults must go through the validators too, otherwise a missing
        # JWT_SECRET would slip through as "".
        validate_default=True,
    )

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "localhost"
    port: int = 3000

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured".
    database_url: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    jwt_secret: str = ""
    jwt_expiry: str = "24h"
    refresh_token_expiry: str = "7d"
    bcrypt_rounds: int = 10

    # ------------------------------------------------------------------
    # Logging / CORS / rate limiting
    # ------------------------------------------------------------------

    log_level: str = "info"
    cors_origin: str = "http://localhost:3000"
    rate_limit_window_ms: int = 900_000
    rate_limit_max_requests: int = 100
    rate_limit_enabled: bool = True

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, value: str) -> str:
        """Require a signing secret of at least 32 characters [M6]."""
        if not value:
            raise ValueError("JWT_SECRET is required. Set it in your environment or .env file.")
        if len(value) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        return value

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        if not value:
            raise ValueError("DATABASE_URL is required. Set it in your environment or .env file.")
        return value

    @field_validator("jwt_expiry", "refresh_token_expiry")
    @classmethod
    def validate_expiry(cls, value: str) -> str:
        parse_duration(value)
        return value

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        # bcrypt.gensalt() accepts 4..31
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown LOG_LEVEL {value!r}.")
        return level

    @field_validator("rate_limit_window_ms", "rate_limit_max_requests")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Rate limit settings must be positive.")
        return value

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def access_token_ttl(self) -> timedelta:
        return parse_duration(self.jwt_expiry)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return parse_duration(self.refresh_token_expiry)

    @property
    def rate_limit(self) -> str:
        """The aggregate per-client limit in slowapi/limits notation."""
        window_seconds = max(1, self.rate_limit_window_ms // 1000)
        return f"{self.rate_limit_max_requests} per {window_seconds} second"


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    Raises ConfigError when a required variable is missing or invalid.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    try:
        return Settings()
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']).upper()}: {err['msg']}" for err in exc.errors()
        )
        logger.error("Invalid configuration: %s", problems)
        raise ConfigError(f"Invalid configuration: {problems}") from exc
