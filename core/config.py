"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the advocate directory happen here. No
module should call os.getenv() or os.environ.get() directly -- import
get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET, jwt_expires_in -> JWT_EXPIRES_IN).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Used for the APP_ENV-conditional JWT_SECRET logic:
      development and test fall back to a fixed development secret with a
      warning, production refuses to start without one.

Security notes:
  JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing relies
  on key entropy -- a short key weakens every issued token.

  The development fallback secret is public (it is in this file). It exists
  so local sessions survive a restart; it must never sign production tokens,
  which is why production mode hard-fails instead of using it.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or directory/.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("advocates.config")

_DEV_FALLBACK_SECRET = "advocate-directory-insecure-development-secret"

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'advocates.db'}"

# "24h", "30m", "7d" or a bare number of seconds ("3600").
_TTL_RE = re.compile(r"^\s*(\d+)\s*([hmd]?)\s*$")
_TTL_UNITS: dict[str, int] = {"": 1, "m": 60, "h": 3600, "d": 86400}


def parse_ttl(value: str) -> int:
    """Convert a TTL string with an optional unit suffix into seconds.

    Suffixes: m (minutes), h (hours), d (days). No suffix means seconds.
    Raises ValueError for anything else, including a zero duration -- a token
    that expires the moment it is issued is a misconfiguration, not a policy.
    """
    match = _TTL_RE.match(value or "")
    if match is None:
        raise ValueError(f"Invalid TTL {value!r}: expected a number with optional suffix h, m or d.")
    seconds = int(match.group(1)) * _TTL_UNITS[match.group(2)]
    if seconds <= 0:
        raise ValueError(f"Invalid TTL {value!r}: must be greater than zero.")
    return seconds


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    app_env: Literal["development", "test", "production"] = "development"
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The model_validator
    # below either substitutes the development secret or raises.
    jwt_secret: str = ""
    jwt_expires_in: str = "24h"
    cookie_name: str = "auth-token"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("jwt_expires_in")
    @classmethod
    def validate_jwt_expires_in(cls, v: str) -> str:
        parse_ttl(v)
        return v.strip()

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """Enforce the JWT_SECRET policy.

        development / test: fall back to the fixed development secret with a
            warning. Sessions survive restarts; tokens are forgeable by anyone
            who has read this file.

        production: refuse to start if JWT_SECRET is missing.

        All modes: reject secrets shorter than 32 characters.
        """
        if not self.jwt_secret:
            if self.is_production:
                raise ValueError(
                    "JWT_SECRET is required in production mode. "
                    "Set JWT_SECRET in your environment or .env file."
                )
            self.jwt_secret = _DEV_FALLBACK_SECRET
            logger.warning("Using the built-in development JWT_SECRET. Never run production with it.")
        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def secure_cookies(self) -> bool:
        """Cookies carry the Secure attribute only in production (HTTPS)."""
        return self.is_production

    @property
    def token_ttl_seconds(self) -> int:
        return parse_ttl(self.jwt_expires_in)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
