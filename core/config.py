"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Alumni Connect happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.
      List and dict fields are parsed from JSON, e.g.
      ADMIN_CATEGORIES='{"events": "event", "news": "news"}'.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Used for the DEBUG-conditional SECRET_KEY logic: dev mode
      generates a key with a warning, production mode refuses to start without one.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. Session tokens are
  stored as HMAC-SHA256(SECRET_KEY, token), so a short key weakens every session.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
admin/, or kv/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("alumni.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'kv' / 'alumni_kv.db'}"

# URL category name -> key prefix. Explicit pairs, so irregular plurals
# ("news") map correctly.
_DEFAULT_ADMIN_CATEGORIES: dict[str, str] = {
    "events": "event",
    "jobs": "job",
    "news": "news",
    "users": "user",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file (DEBUG=true still required for the
    secret key to be generated).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    # 0 disables expiry: sessions live until logout or revocation.
    session_ttl_seconds: int = 0

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    seed_demo_users: bool = True

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_allow_origins: list[str] = ["*"]
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    admin_categories: dict[str, str] = dict(_DEFAULT_ADMIN_CATEGORIES)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("session_ttl_seconds")
    @classmethod
    def validate_ttl(cls, value: int) -> int:
        if value < 0:
            raise ValueError("SESSION_TTL_SECONDS must be 0 (no expiry) or a positive number of seconds.")
        return value

    @field_validator("admin_categories")
    @classmethod
    def validate_categories(cls, value: dict[str, str]) -> dict[str, str]:
        """Reject empty names and prefixes containing the key separator."""
        for category, prefix in value.items():
            if not category or not prefix:
                raise ValueError("ADMIN_CATEGORIES entries must have a non-empty name and prefix.")
            if ":" in prefix:
                raise ValueError(f"ADMIN_CATEGORIES prefix {prefix!r} must not contain ':'.")
        return value

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Existing sessions stop resolving after a restart -- acceptable for
            local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Sessions will not persist across restarts."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
