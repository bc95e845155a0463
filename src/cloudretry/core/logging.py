"""
Structured logging for cloudretry.

The executor, transaction scopes and RPC client log through
:func:`get_logger`, so attempt numbers, delays and failure reasons end up as
fields of one structured stream rather than in message text.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="billing")

        processors
          TimeStamper(iso)                    (add_timestamp=True)
          merge_contextvars                   fields from bind_context / LogContext
          add_log_level, add_logger_name
          StackInfoRenderer, set_exc_info
          _add_service_name                   service.name
          _to_ecs_names, format_exc_info      JSON only: @timestamp, log.level
          JSONRenderer | ConsoleRenderer

Examples:
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.warning("retry_scheduled", attempt=1, delay=0.5)

Tags:
    logging, structlog, cloudretry

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger


_service = "cloudretry"

# ECS names for the fields structlog produces.
_ECS_RENAMES = {"timestamp": "@timestamp", "level": "log.level"}


def _add_service_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _service)
    return event_dict


def _to_ecs_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for field, ecs_field in _ECS_RENAMES.items():
        if field in event_dict:
            event_dict[ecs_field] = event_dict.pop(field)
    return event_dict


def _processors(json_format: bool, add_timestamp: bool) -> list[Processor]:
    chain: list[Processor] = []
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso"))
    chain += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_name,
    ]
    if json_format:
        chain += [_to_ecs_names, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=True))
    return chain


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "cloudretry",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog (and the stdlib root logger it writes through).

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        json_format: JSON lines if True, console if False, JSON when stdout
            is not a TTY if None
        service: Value of the ``service.name`` field
        add_timestamp: Add an ISO timestamp to every event
    """
    global _service
    _service = service

    if json_format is None:
        json_format = not sys.stdout.isatty()
    numeric_level = getattr(logging, level.upper())

    structlog.configure(
        processors=_processors(json_format, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**fields: Any) -> None:
    """Attach ``fields`` to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**fields)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a ``with`` / ``async with`` block.

    Example:
        async with LogContext(operation="insert_rows", database="orders"):
            await policy.execute(insert_rows)
    """

    def __init__(self, **fields: Any):
        self._fields = fields

    def __enter__(self) -> LogContext:
        bind_context(**self._fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        unbind_context(*self._fields)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
