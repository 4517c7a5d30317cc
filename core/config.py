"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for BuildTrack happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. kdf_rounds -> KDF_ROUNDS). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Used to keep the credential parameters
      above their safety floors outside of debug mode.

Security notes:
  [K1] Salts shorter than 16 bytes and derived hashes shorter than 32 bytes
       are rejected outright, in every mode.

  [K2] In production mode (DEBUG not set or false), fewer than 50 KDF rounds
       is a hard startup failure. Debug mode accepts it with a warning so the
       test suite can run the KDF cheaply.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or tracker/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("buildtrack.config")

_REPO_ROOT = Path(__file__).resolve().parent.parent

# Minimum bcrypt-pbkdf rounds accepted outside debug mode [K2].
MIN_PRODUCTION_KDF_ROUNDS = 50


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
    database_url: str = f"sqlite:///{_REPO_ROOT / 'auth' / 'buildtrack_auth.db'}"
    tracker_database_url: str = f"sqlite:///{_REPO_ROOT / 'tracker' / 'buildtrack_tracker.db'}"

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    # Fixed lifetime from issuance. There is no refresh mechanism; clients
    # re-authenticate once a token lapses.
    session_ttl_seconds: int = 7 * 24 * 60 * 60
    session_purge_interval_seconds: int = 6 * 60 * 60

    # ------------------------------------------------------------------
    # Credentials (bcrypt-pbkdf)
    # ------------------------------------------------------------------

    kdf_rounds: int = 64
    kdf_key_bytes: int = 64
    salt_bytes: int = 16

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    signup_rate_limit: str = "5/minute"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = [
        "http://localhost",
        "http://localhost:5173",
        "http://localhost:8081",
        "http://127.0.0.1",
    ]
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost", "testserver"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_credential_parameters(self) -> "Settings":
        """Enforce the KDF and session parameter floors [K1] [K2].

        Debug mode (DEBUG=true): low KDF round counts are accepted with a
            warning. Hashes derived this way are weak -- acceptable for local
            dev and tests only.

        Production mode (DEBUG=false or not set): refuse to start with fewer
            than MIN_PRODUCTION_KDF_ROUNDS rounds.
        """
        if self.salt_bytes < 16:
            raise ValueError("SALT_BYTES must be at least 16.")
        if self.kdf_key_bytes < 32:
            raise ValueError("KDF_KEY_BYTES must be at least 32.")
        if self.kdf_rounds < 1:
            raise ValueError("KDF_ROUNDS must be a positive integer.")
        if self.session_ttl_seconds <= 0:
            raise ValueError("SESSION_TTL_SECONDS must be positive.")
        if self.kdf_rounds < MIN_PRODUCTION_KDF_ROUNDS:
            if self.debug:
                logger.warning(
                    "WARNING: KDF_ROUNDS=%d is below %d. Password hashes are weak; " "use this in development only.",
                    self.kdf_rounds,
                    MIN_PRODUCTION_KDF_ROUNDS,
                )
            else:
                raise ValueError(
                    f"KDF_ROUNDS must be at least {MIN_PRODUCTION_KDF_ROUNDS} in production mode. "
                    "To run with fewer rounds, set DEBUG=true."
                )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings() directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
