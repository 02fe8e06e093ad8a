"""
Application Configuration.

Pydantic Settings model for AuthPortal.  Values are read from
environment variables and the ``.env`` file; inject an ``AppConfig``
instance wherever configuration is needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import ClassVar, Optional

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")
    PROFILES_TABLE: str = "profiles"

    # --- Redirect targets embedded in provider emails ---
    EMAIL_REDIRECT_URL: str = "authportal://login"
    RESET_REDIRECT_URL: str = "authportal://login#reset-password"

    # --- Auth policy ---
    MIN_PASSWORD_LENGTH: int = 6
    DEFERRED_SIGNOUT_DELAY_S: float = 1.0

    # --- Presentation ---
    LOCALE: str = "en"
    SUPPORTED_LOCALES: ClassVar[frozenset[str]] = frozenset({"en", "ru"})

    # --- Logging ---
    LOG_FILE: str = "authportal.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @field_validator("LOCALE")
    @classmethod
    def _check_locale(cls, value: str) -> str:
        locale = value.strip().lower()
        if locale not in cls.SUPPORTED_LOCALES:
            raise ValueError(
                f"Unsupported LOCALE '{value}'. "
                f"Expected one of: {', '.join(sorted(cls.SUPPORTED_LOCALES))}."
            )
        return locale

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Log a startup warning when the provider is not configured.

        Without a Supabase URL every auth operation fails with a
        network error, so operators need to see this on first run.
        """
        _log = logging.getLogger("authportal.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL or not self.SUPABASE_ANON_KEY.get_secret_value():
            _log.warning(
                "SUPABASE_URL / SUPABASE_ANON_KEY are empty. "
                "Authentication is unavailable until they are set."
            )

        return self

    @property
    def is_provider_configured(self) -> bool:
        """``True`` when both Supabase URL and anon key are present."""
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY.get_secret_value())


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    The first call reads ``.env``; later calls reuse the instance.
    Prefer constructor injection of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
