"""Core primitives shared by every cloudretry layer.

Modules::

    errors.py      Typed error hierarchy with retry semantics
    result.py      Ok / Err envelope for units of work
    logging.py     structlog configuration and context binding
    protocols.py   Connection, transaction and transport contracts
    config/        RetrySettings (pydantic-settings) and factories
"""

from cloudretry.core.errors import (
    CloudError,
    ErrorCategory,
    ErrorContext,
    TransientError,
    is_retryable,
)
from cloudretry.core.logging import configure_logging, get_logger
from cloudretry.core.result import Err, Ok, Result, try_result, try_result_async

__all__ = [
    "CloudError",
    "ErrorCategory",
    "ErrorContext",
    "TransientError",
    "is_retryable",
    "configure_logging",
    "get_logger",
    "Ok",
    "Err",
    "Result",
    "try_result",
    "try_result_async",
]
