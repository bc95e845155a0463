"""
Factory functions that build retry components from settings.

Features:
    - ``create_backoff()``: backoff schedule for ``settings.strategy``
    - ``configure_logging_from_settings()``: structlog setup from settings

Tags:
    cloudretry, configuration, factory-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cloudretry.execution.backoff import (
    BackoffSchedule,
    ConstantBackoff,
    ExponentialBackoff,
    LinearBackoff,
    NoRetry,
)

from .settings import BackoffKind

if TYPE_CHECKING:
    from .settings import RetrySettings


def create_backoff(settings: RetrySettings) -> BackoffSchedule:
    """Create the backoff schedule selected by *settings.strategy*."""
    if settings.strategy == BackoffKind.EXPONENTIAL:
        return ExponentialBackoff(
            max_attempts=settings.max_attempts,
            base_delay=settings.base_delay,
            max_delay=settings.max_delay,
            multiplier=settings.multiplier,
            jitter=settings.jitter,
            jitter_range=settings.jitter_range,
        )
    if settings.strategy == BackoffKind.LINEAR:
        return LinearBackoff(
            max_attempts=settings.max_attempts,
            base_delay=settings.base_delay,
            increment=settings.increment,
            max_delay=settings.max_delay,
        )
    if settings.strategy == BackoffKind.CONSTANT:
        return ConstantBackoff(
            max_attempts=settings.max_attempts,
            delay=settings.base_delay,
        )
    return NoRetry()


def configure_logging_from_settings(settings: RetrySettings, service: str = "cloudretry") -> None:
    """Apply ``log_level`` / ``log_format`` from settings."""
    from cloudretry.core.logging import configure_logging

    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        service=service,
    )
