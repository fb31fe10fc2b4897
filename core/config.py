"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the credential service happen here. No
module should call os.getenv() or os.environ.get() directly -- import
get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. bcrypt_rounds -> BCRYPT_ROUNDS). Type coercion and validation are
      built in.

Security notes:
  BCRYPT_ROUNDS below 4 or above 31 is rejected outright -- bcrypt itself
  refuses those values, and failing at startup is clearer than failing on the
  first registration.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("credsvc.config")

# Same work factor as Go's bcrypt.DefaultCost, which the service has always used.
DEFAULT_BCRYPT_ROUNDS = 10


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
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
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)

    # ------------------------------------------------------------------
    # Credential store
    # ------------------------------------------------------------------

    # Empty string selects the in-memory store (records are lost on restart).
    # Any other value is handed to SQLAlchemy's create_engine().
    store_url: str = ""
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    # Fixed value returned by POST /login. Not a real credential: nothing in
    # the service issues or validates session tokens.
    placeholder_token: str = "fake-jwt-token"  # noqa: S105 # nosec B105
    login_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        """Keep the cost factor inside the range bcrypt.gensalt() accepts."""
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        if value < DEFAULT_BCRYPT_ROUNDS:
            logger.warning("BCRYPT_ROUNDS=%d is below the default of %d", value, DEFAULT_BCRYPT_ROUNDS)
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown LOG_LEVEL: {value!r}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings()
    directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
