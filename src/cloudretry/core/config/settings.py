"""
Centralized retry settings.

Manifesto:
    One validated, cached settings object replaces retry constants that
    every client and snippet would otherwise hard-code. Operators tune the
    attempt budget and delays with ``CLOUDRETRY_*`` environment variables
    (or a ``.env`` file) without touching code.

Tags:
    cloudretry, configuration, settings, pydantic, caching, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackoffKind(str, Enum):
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    CONSTANT = "constant"
    NONE = "none"


class RetrySettings(BaseSettings):
    """Retry configuration.

    All fields can be set via ``CLOUDRETRY_*`` environment variables (e.g.
    ``CLOUDRETRY_MAX_ATTEMPTS=8``) or through a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="CLOUDRETRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Backoff schedule ─────────────────────────────────────────
    strategy: BackoffKind = Field(default=BackoffKind.EXPONENTIAL)
    max_attempts: int = Field(default=5, ge=1, description="Invocations, first attempt included")
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=32.0, ge=0)
    multiplier: float = Field(default=2.0, ge=1)
    increment: float = Field(default=1.0, ge=0, description="Linear strategy only")
    jitter: bool = Field(default=True)
    jitter_range: float = Field(default=0.25, ge=0, le=1)

    # ── Execution ────────────────────────────────────────────────
    attempt_timeout: float | None = Field(default=None, gt=0)
    wrap_exhausted: bool = Field(default=False)
    respect_retry_after: bool = Field(default=True)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", description="console or json")

    @model_validator(mode="after")
    def _validate_delays(self) -> RetrySettings:
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})"
            )
        if self.log_format not in ("console", "json"):
            raise ValueError(f"log_format must be 'console' or 'json', got {self.log_format!r}")
        return self


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, RetrySettings] = {}


def get_settings(
    *,
    env_file: Path | str | None = None,
    _force_reload: bool = False,
) -> RetrySettings:
    """Load, validate, and cache a :class:`RetrySettings` instance.

    Parameters
    ----------
    env_file:
        Explicit ``.env`` file; defaults to ``.env`` in the working directory.
    _force_reload:
        Bypass cache and reload.
    """
    cache_key = str(env_file or "")
    if not _force_reload and cache_key in _settings_cache:
        return _settings_cache[cache_key]

    if env_file is not None:
        settings = RetrySettings(_env_file=env_file)  # type: ignore[call-arg]
    else:
        settings = RetrySettings()

    _settings_cache[cache_key] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()
