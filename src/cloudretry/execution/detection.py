"""Fault detection strategies: decide whether a failure is transient.

The retry executor hands every error to ``strategy.is_transient(error)``
and treats the answer as opaque. Strategies are small immutable objects and
can be shared between policies.

Example:
    >>> from cloudretry.execution.detection import RpcStatusDetection
    >>> from cloudretry.rpc.status import RpcError, StatusCode
    >>> RpcStatusDetection().is_transient(RpcError(StatusCode.ABORTED))
    True
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from cloudretry.core.errors import is_retryable
from cloudretry.rpc.status import TRANSIENT_STATUS_CODES, RpcError, StatusCode


@runtime_checkable
class FaultDetectionStrategy(Protocol):
    """Classifies an error as transient (worth retrying) or fatal."""

    def is_transient(self, error: BaseException) -> bool:
        ...


@dataclass(frozen=True)
class RetryableErrorDetection:
    """Default strategy: trust the error's own ``retryable`` flag."""

    def is_transient(self, error: BaseException) -> bool:
        return is_retryable(error)


@dataclass(frozen=True)
class ErrorTypeDetection:
    """Transient if the error is an instance of one of ``types``."""

    types: tuple[type[BaseException], ...]

    def is_transient(self, error: BaseException) -> bool:
        return isinstance(error, self.types)


# Messages of INTERNAL errors that are really HTTP/2 stream resets.
_STREAM_RESET_MARKERS = (
    "RST_STREAM",
    "Received unexpected EOS on DATA frame from server",
)


@dataclass(frozen=True)
class RpcStatusDetection:
    """
    Transient if the error is an :class:`RpcError` with a transient code.

    ``INTERNAL`` errors caused by a reset HTTP/2 stream are also treated as
    transient when ``retry_stream_resets`` is set; the server never saw the
    request complete, so re-running it is safe.
    """

    codes: frozenset[StatusCode] = TRANSIENT_STATUS_CODES
    retry_stream_resets: bool = True

    def is_transient(self, error: BaseException) -> bool:
        if not isinstance(error, RpcError):
            return False
        if error.code in self.codes:
            return True
        if self.retry_stream_resets and error.code is StatusCode.INTERNAL:
            return any(marker in error.message for marker in _STREAM_RESET_MARKERS)
        return False


@dataclass(frozen=True)
class PredicateDetection:
    """Wraps a plain ``error -> bool`` callable."""

    predicate: Callable[[BaseException], bool]

    def is_transient(self, error: BaseException) -> bool:
        return bool(self.predicate(error))


@dataclass(frozen=True)
class AlwaysTransient:
    def is_transient(self, error: BaseException) -> bool:
        return True


@dataclass(frozen=True)
class NeverTransient:
    def is_transient(self, error: BaseException) -> bool:
        return False


@dataclass(frozen=True, init=False)
class AnyOf:
    """Transient if any member strategy says so."""

    strategies: tuple[FaultDetectionStrategy, ...] = field(default=())

    def __init__(self, *strategies: FaultDetectionStrategy):
        object.__setattr__(self, "strategies", tuple(strategies))

    def is_transient(self, error: BaseException) -> bool:
        return any(s.is_transient(error) for s in self.strategies)


__all__ = [
    "FaultDetectionStrategy",
    "RetryableErrorDetection",
    "ErrorTypeDetection",
    "RpcStatusDetection",
    "PredicateDetection",
    "AlwaysTransient",
    "NeverTransient",
    "AnyOf",
]
