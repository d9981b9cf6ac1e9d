"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the Oil Union API happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, bcrypt_rounds -> BCRYPT_ROUNDS).

  @model_validator(mode="after"): cross-field validation once every field is
      resolved. Dev mode (DEBUG=true) generates throwaway signing keys with a
      warning; production mode refuses to start without them.

Security notes:
  Signing keys shorter than 32 chars are rejected outright. Access and refresh
  tokens use different keys so a leaked refresh key cannot mint access tokens.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
registry/, or services/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("oilunion.config")

_DEFAULT_DB_URL = "sqlite:///./oilunion.db"


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

    debug: bool = False
    port: int = 5000

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    db_pool_size: int = 20
    db_max_overflow: int = 0
    db_pool_timeout: int = 5  # seconds to wait for a pooled connection
    db_pool_recycle: int = 1800  # seconds before a pooled connection is replaced

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The validator below
    # either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    refresh_secret_key: str = ""
    token_expire_seconds: int = 24 * 3600
    refresh_token_expire_seconds: int = 7 * 24 * 3600
    bcrypt_rounds: int = 10

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    # Comma-separated, e.g. "https://union.example,https://admin.union.example"
    cors_origins: str = "http://localhost:3000,http://localhost:5173"
    allowed_hosts: str = "*"

    # ------------------------------------------------------------------
    # Rate limiting (slowapi / limits syntax)
    # ------------------------------------------------------------------

    rate_limit: str = "100/15 minutes"
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Audit retention
    # ------------------------------------------------------------------

    # 0 keeps every audit entry forever; N > 0 prunes entries older than N days.
    audit_retention_days: int = 0

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def allowed_host_list(self) -> list[str]:
        return [h.strip() for h in self.allowed_hosts.split(",") if h.strip()]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_keys(self) -> "Settings":
        """Enforce signing-key policy.

        Dev mode (DEBUG=true): auto-generate random keys with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if either key is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        for field_name in ("secret_key", "refresh_secret_key"):
            value = getattr(self, field_name)
            if not value:
                if not self.debug:
                    raise ValueError(
                        f"{field_name.upper()} is required in production mode. "
                        "Set it in your environment or .env file. "
                        "To run in development mode, set DEBUG=true."
                    )
                value = secrets.token_hex(32)
                setattr(self, field_name, value)
                logger.warning("Using auto-generated %s. Tokens will not persist across restarts.", field_name.upper())
            if len(value) < 32:
                raise ValueError(f"{field_name.upper()} must be at least 32 characters.")
        if self.secret_key == self.refresh_secret_key:
            raise ValueError("SECRET_KEY and REFRESH_SECRET_KEY must differ.")
        return self

    @model_validator(mode="after")
    def validate_bcrypt_rounds(self) -> "Settings":
        # bcrypt accepts 4..31; anything above 15 makes logins take seconds.
        if not 4 <= self.bcrypt_rounds <= 15:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 15.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
