"""Retry policies: a fault detection strategy bound to a backoff schedule.

Example:
    >>> from cloudretry.execution.policy import RetryPolicy
    >>> from cloudretry.execution.backoff import default_exponential
    >>> from cloudretry.execution.detection import RpcStatusDetection
    >>>
    >>> policy = RetryPolicy(RpcStatusDetection(), default_exponential())
    >>> await policy.execute(lambda: insert_rows(connection_string))
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from cloudretry.core.errors import get_retry_after
from cloudretry.core.result import Err, Ok, Result
from cloudretry.execution.backoff import BackoffSchedule, ConstantBackoff, ExponentialBackoff
from cloudretry.execution.cancellation import CancellationToken
from cloudretry.execution.detection import (
    AlwaysTransient,
    FaultDetectionStrategy,
    RetryableErrorDetection,
)
from cloudretry.execution.executor import ExecutionAttempt, FailureReason, RetryExecution

if TYPE_CHECKING:
    from cloudretry.core.config.settings import RetrySettings

T = TypeVar("T")

RetryHook = Callable[[int, BaseException, float], None]
GiveUpHook = Callable[[FailureReason, "ExecutionAttempt | None"], None]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Immutable retry configuration, safe to share between concurrent calls.

    Each ``execute`` call creates its own :class:`RetryExecution`, so no
    state crosses calls.

    Attributes:
        detection: Decides whether an error is transient
        backoff: Attempt budget and delay schedule
        attempt_timeout: Per-attempt time limit in seconds (async only)
        wrap_exhausted: Raise RetriesExhaustedError instead of the last error
        respect_retry_after: Wait at least ``error.retry_after`` when set
        on_retry: Called before each backoff with (attempt, error, delay)
        on_give_up: Called once with (reason, last attempt) on failure
    """

    detection: FaultDetectionStrategy = field(default_factory=RetryableErrorDetection)
    backoff: BackoffSchedule = field(default_factory=ExponentialBackoff)
    attempt_timeout: float | None = None
    wrap_exhausted: bool = False
    respect_retry_after: bool = True
    on_retry: RetryHook | None = None
    on_give_up: GiveUpHook | None = None

    def __post_init__(self) -> None:
        if self.attempt_timeout is not None and self.attempt_timeout <= 0:
            raise ValueError(f"attempt_timeout must be positive, got {self.attempt_timeout}")

    @property
    def max_attempts(self) -> int:
        return self.backoff.max_attempts

    def delay_for(self, attempt: int, error: BaseException) -> float:
        """Backoff after ``attempt`` failed with ``error``."""
        delay = self.backoff.next_delay(attempt)
        if self.respect_retry_after:
            hint = get_retry_after(error)
            if hint is not None:
                delay = max(delay, float(hint))
        return delay

    async def execute(
        self,
        op: Callable[[], Any],
        cancel: CancellationToken | None = None,
        *,
        operation: str | None = None,
    ) -> Any:
        """Run an async unit of work with retries and return its value."""
        return await RetryExecution(self, operation=operation).run(op, cancel)

    async def execute_result(
        self,
        op: Callable[[], Any],
        cancel: CancellationToken | None = None,
        *,
        operation: str | None = None,
    ) -> Result[Any]:
        """Like :meth:`execute` but return ``Ok``/``Err`` instead of raising.

        Task cancellation (``asyncio.CancelledError``) still propagates.
        """
        try:
            return Ok(await self.execute(op, cancel, operation=operation))
        except Exception as e:
            return Err(e)

    def execute_sync(
        self,
        op: Callable[[], Any],
        cancel: CancellationToken | None = None,
        *,
        operation: str | None = None,
    ) -> Any:
        """Blocking variant for synchronous units of work."""
        return RetryExecution(self, operation=operation).run_sync(op, cancel)

    @classmethod
    def from_settings(
        cls,
        settings: RetrySettings,
        detection: FaultDetectionStrategy | None = None,
        **overrides: Any,
    ) -> RetryPolicy:
        """Build a policy from :class:`RetrySettings`."""
        from cloudretry.core.config.factory import create_backoff

        kwargs: dict[str, Any] = {
            "detection": detection or RetryableErrorDetection(),
            "backoff": create_backoff(settings),
            "attempt_timeout": settings.attempt_timeout,
            "wrap_exhausted": settings.wrap_exhausted,
            "respect_retry_after": settings.respect_retry_after,
        }
        kwargs.update(overrides)
        return cls(**kwargs)


def with_retry(
    policy: RetryPolicy | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator factory to add retry logic to a function.

    Args:
        policy: Retry policy (default: ``RetryPolicy()``)

    Example:
        >>> @with_retry(RetryPolicy(backoff=ExponentialBackoff(max_attempts=3)))
        ... async def commit_batch(rows):
        ...     return await client.commit(rows)
    """
    if policy is None:
        policy = RetryPolicy()

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        operation = getattr(func, "__qualname__", None)
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> T:
                return await policy.execute(
                    lambda: func(*args, **kwargs), operation=operation
                )
            return async_wrapper  # type: ignore[return-value]
        else:
            @functools.wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> T:
                return policy.execute_sync(
                    lambda: func(*args, **kwargs), operation=operation
                )
            return sync_wrapper

    return decorator


_RETRY_ONCE = RetryPolicy(
    detection=AlwaysTransient(),
    backoff=ConstantBackoff(max_attempts=2, delay=0.0),
    respect_retry_after=False,
)


def retry_once(op: Callable[[], T]) -> T:
    """Run ``op``; on any exception run it exactly once more.

    Meant for test fixtures talking to a live service, where one flake should
    not fail the test but a second one should.
    """
    return _RETRY_ONCE.execute_sync(op, operation="retry_once")


async def retry_once_async(op: Callable[[], Any]) -> Any:
    """Async counterpart of :func:`retry_once`."""
    return await _RETRY_ONCE.execute(op, operation="retry_once")


__all__ = [
    "RetryPolicy",
    "RetryHook",
    "GiveUpHook",
    "with_retry",
    "retry_once",
    "retry_once_async",
]
