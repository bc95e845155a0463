"""Retry configuration: validated settings and the factories that consume them.

Quick start::

    from cloudretry.core.config import get_settings
    from cloudretry.execution import RetryPolicy

    policy = RetryPolicy.from_settings(get_settings())

Architecture::

    settings.py       RetrySettings (Pydantic) + get_settings() cache
    factory.py        create_backoff / configure_logging_from_settings
"""

from .factory import configure_logging_from_settings, create_backoff
from .settings import BackoffKind, RetrySettings, clear_settings_cache, get_settings

__all__ = [
    "BackoffKind",
    "RetrySettings",
    "get_settings",
    "clear_settings_cache",
    "create_backoff",
    "configure_logging_from_settings",
]
