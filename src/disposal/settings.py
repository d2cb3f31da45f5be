"""Settings for disposal services.

All fields can be set via ``DISPOSAL_*`` environment variables (e.g.
``DISPOSAL_SHUTDOWN_TIMEOUT_SECONDS=3``) or a ``.env`` file.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    The defaults work out of the box; a process only overrides what it
    needs (a shorter shutdown bound in tests, a smaller default pool in a
    constrained container).

Fields
──────
shutdown_timeout_seconds   : Bounded wait for consumer and default pool on stop
default_pool_max_workers   : Worker ceiling of the shared default pool
default_pool_thread_prefix : Thread name prefix of the shared default pool
consumer_thread_name       : Name of the consumer thread
log_level                  : Structlog log level
log_format                 : auto / json / console
log_undecorate_misses      : Log ``undecorate`` calls for unknown targets

Tags:
    settings, configuration, pydantic, environment, disposal

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class DisposalSettings(BaseSettings):
    """Validated configuration for a :class:`~disposal.service.DisposalService`."""

    model_config = SettingsConfigDict(
        env_prefix="DISPOSAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Lifecycle ────────────────────────────────────────────────
    shutdown_timeout_seconds: float = Field(default=10.0, gt=0)

    # ── Default pool ─────────────────────────────────────────────
    default_pool_max_workers: int = Field(default=64, ge=1)
    default_pool_thread_prefix: str = Field(default="disposal-pool", min_length=1)

    # ── Consumer ─────────────────────────────────────────────────
    consumer_thread_name: str = Field(default="disposal-consumer", min_length=1)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["auto", "json", "console"] = Field(default="auto")
    log_undecorate_misses: bool = Field(default=True)

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @property
    def json_logs(self) -> bool | None:
        """``None`` lets the logging setup auto-detect from the TTY."""
        if self.log_format == "auto":
            return None
        return self.log_format == "json"


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, DisposalSettings] = {}


def get_settings(*, _force_reload: bool = False) -> DisposalSettings:
    """Load, validate, and cache a :class:`DisposalSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = DisposalSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["DisposalSettings", "get_settings", "clear_settings_cache"]
