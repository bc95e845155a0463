"""Transient-fault retry executor.

Runs one unit of work under a :class:`~cloudretry.execution.policy.RetryPolicy`:
invoke, classify the failure, back off, invoke again, until the work
succeeds, a failure is classified as fatal, the attempt budget is spent, or
the caller cancels.

Manifesto:
    Remote database calls fail transiently all the time (aborted
    transactions, unavailable sessions, reset streams). The executor keeps
    retry bookkeeping in one place so snippets and clients only describe the
    work itself:

    - **Strictly sequential:** one attempt at a time, never in parallel
    - **Bounded:** the unit of work runs at most ``max_attempts`` times
    - **Never swallows:** every failure is either retried or propagated
    - **Observable:** exhausted, non-transient and cancelled are logged and
      reported to hooks as different outcomes

Architecture:
    ::

        ┌──────┐   ┌────────────┐ ok  ┌───────────┐
        │ IDLE │──▶│ ATTEMPTING │────▶│ SUCCEEDED │
        └──────┘   └────────────┘     └───────────┘
                     │ ▲      │
           transient │ │      │ fatal / exhausted / cancelled
                     ▼ │      ▼
                 ┌─────────┐ ┌────────┐
                 │ BACKOFF │▶│ FAILED │  (cancelled during the wait)
                 └─────────┘ └────────┘

Examples:
    >>> execution = RetryExecution(policy, operation="insert_rows")
    >>> rows = await execution.run(insert_rows)
    >>> execution.attempt_count
    2
    >>> [a.outcome for a in execution.attempts]
    [<AttemptOutcome.TRANSIENT_FAILURE: ...>, <AttemptOutcome.SUCCEEDED: ...>]

Tags:
    retry, backoff, transient-fault, state-machine, cancellation, cloudretry

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from cloudretry.core.errors import (
    AttemptTimeoutError,
    RetriesExhaustedError,
    RetryCancelledError,
)
from cloudretry.core.logging import get_logger
from cloudretry.core.result import Err, Ok
from cloudretry.execution.cancellation import CancellationToken
from cloudretry.execution.transaction import current_scope

if TYPE_CHECKING:
    from cloudretry.execution.policy import RetryPolicy

T = TypeVar("T")

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class ExecutionState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class AttemptOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    TRANSIENT_FAILURE = "transient_failure"
    FATAL_FAILURE = "fatal_failure"
    CANCELLED = "cancelled"


class FailureReason(str, Enum):
    """Why an execution ended in FAILED."""

    NON_TRANSIENT = "non_transient"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


_TRANSITIONS: dict[ExecutionState, frozenset[ExecutionState]] = {
    ExecutionState.IDLE: frozenset({ExecutionState.ATTEMPTING, ExecutionState.FAILED}),
    ExecutionState.ATTEMPTING: frozenset({
        ExecutionState.SUCCEEDED,
        ExecutionState.BACKOFF,
        ExecutionState.FAILED,
    }),
    ExecutionState.BACKOFF: frozenset({ExecutionState.ATTEMPTING, ExecutionState.FAILED}),
    ExecutionState.SUCCEEDED: frozenset(),
    ExecutionState.FAILED: frozenset(),
}

# Returned by _invoke when the token fired while the attempt was in flight.
_TOKEN_CANCELLED = object()


@dataclass
class ExecutionAttempt:
    """Record of one invocation of the unit of work."""

    number: int
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    outcome: AttemptOutcome | None = None
    error: BaseException | None = None
    delay: float | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


@dataclass
class RetryExecution(Generic[T]):
    """
    State of a single ``execute`` call.

    Owns the attempt counter, the attempt history and the last error; nothing
    else survives from one attempt to the next. Instances run once.
    """

    policy: RetryPolicy
    operation: str | None = None
    state: ExecutionState = field(default=ExecutionState.IDLE, init=False)
    attempts: list[ExecutionAttempt] = field(default_factory=list, init=False)
    last_error: BaseException | None = field(default=None, init=False)
    failure_reason: FailureReason | None = field(default=None, init=False)
    started_at: datetime | None = field(default=None, init=False)
    finished_at: datetime | None = field(default=None, init=False)

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def elapsed_seconds(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.finished_at or utcnow()
        return (end - self.started_at).total_seconds()

    @property
    def max_attempts(self) -> int:
        return self.policy.backoff.max_attempts

    # ------------------------------------------------------------------
    # async
    # ------------------------------------------------------------------

    async def run(
        self,
        op: Callable[[], Any],
        cancel: CancellationToken | None = None,
    ) -> T:
        """Execute ``op`` with retry logic.

        Args:
            op: Zero-argument callable returning an awaitable (or a value).
                The awaited value may be a ``Result``; ``Err`` counts as a
                failure and ``Ok`` is unwrapped.
            cancel: Optional token that stops the loop when fired

        Returns:
            Value of the first successful attempt

        Raises:
            The last error when it is non-transient or attempts are
            exhausted (``RetriesExhaustedError`` if the policy wraps);
            ``RetryCancelledError`` when ``cancel`` fires;
            ``asyncio.CancelledError`` when the calling task is cancelled.
        """
        self._start()
        number = 0

        while True:
            number += 1
            if cancel is not None and cancel.cancelled:
                raise self._cancelled(None, cancel)

            attempt = self._begin_attempt(number)
            try:
                value = await self._invoke(op, cancel)
            except asyncio.CancelledError:
                self._cancelled(attempt, None)
                raise
            except Exception as exc:
                error: BaseException = exc
            else:
                if value is _TOKEN_CANCELLED:
                    raise self._cancelled(attempt, cancel)
                if isinstance(value, Err):
                    error = value.error
                else:
                    return self._succeed(attempt, value)

            delay = self._after_failure(attempt, error)

            try:
                if cancel is None:
                    await asyncio.sleep(delay)
                elif await cancel.wait(delay):
                    raise self._cancelled(None, cancel)
            except asyncio.CancelledError:
                self._cancelled(None, None)
                raise
            self._transition(ExecutionState.ATTEMPTING)

    async def _invoke(self, op: Callable[[], Any], cancel: CancellationToken | None) -> Any:
        timeout = self.policy.attempt_timeout

        async def attempt() -> Any:
            result = op()
            if not inspect.isawaitable(result):
                return result
            if timeout is None:
                return await result
            deadline = asyncio.timeout(timeout)
            try:
                async with deadline:
                    return await result
            except TimeoutError as exc:
                if deadline.expired():
                    raise AttemptTimeoutError(timeout, cause=exc) from exc
                raise

        if cancel is None:
            return await attempt()

        task = asyncio.ensure_future(attempt())
        waiter = asyncio.ensure_future(cancel.wait_cancelled())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            await asyncio.gather(task, waiter, return_exceptions=True)
            raise

        if task.done():
            waiter.cancel()
            await asyncio.gather(waiter, return_exceptions=True)
            return task.result()

        # Token fired first: stop the attempt and let its cleanup finish.
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return _TOKEN_CANCELLED

    # ------------------------------------------------------------------
    # sync
    # ------------------------------------------------------------------

    def run_sync(
        self,
        op: Callable[[], Any],
        cancel: CancellationToken | None = None,
    ) -> T:
        """Blocking counterpart of :meth:`run`.

        The token is checked before each attempt and interrupts the backoff
        wait; an attempt already running is not interrupted. ``attempt_timeout``
        does not apply.
        """
        self._start()
        number = 0

        while True:
            number += 1
            if cancel is not None and cancel.cancelled:
                raise self._cancelled(None, cancel)

            attempt = self._begin_attempt(number)
            try:
                value = op()
            except Exception as exc:
                error: BaseException = exc
            else:
                if isinstance(value, Err):
                    error = value.error
                else:
                    return self._succeed(attempt, value)

            delay = self._after_failure(attempt, error)

            if cancel is not None:
                if cancel.wait_sync(delay):
                    raise self._cancelled(None, cancel)
            else:
                time.sleep(delay)
            self._transition(ExecutionState.ATTEMPTING)

    # ------------------------------------------------------------------
    # bookkeeping
    # ------------------------------------------------------------------

    def _transition(self, new: ExecutionState) -> None:
        if new not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid retry state transition {self.state.value} -> {new.value}")
        self.state = new

    def _log_fields(self, **extra: Any) -> dict[str, Any]:
        fields: dict[str, Any] = {"max_attempts": self.max_attempts}
        if self.operation:
            fields["operation"] = self.operation
        fields.update(extra)
        return fields

    def _start(self) -> None:
        if self.state is not ExecutionState.IDLE:
            raise RuntimeError("RetryExecution objects run once; create a new one per call")
        self.started_at = utcnow()
        if current_scope() is not None:
            logger.warning("retry_inside_ambient_transaction", **self._log_fields())

    def _begin_attempt(self, number: int) -> ExecutionAttempt:
        if self.state is ExecutionState.IDLE:
            self._transition(ExecutionState.ATTEMPTING)
        attempt = ExecutionAttempt(number=number)
        self.attempts.append(attempt)
        logger.debug("retry_attempt_started", **self._log_fields(attempt=number))
        return attempt

    def _succeed(self, attempt: ExecutionAttempt, value: Any) -> Any:
        attempt.finished_at = utcnow()
        attempt.outcome = AttemptOutcome.SUCCEEDED
        self._transition(ExecutionState.SUCCEEDED)
        self.finished_at = attempt.finished_at
        logger.debug(
            "retry_attempt_succeeded",
            **self._log_fields(attempt=attempt.number, elapsed=self.elapsed_seconds),
        )
        if isinstance(value, Ok):
            return value.value
        return value

    def _after_failure(self, attempt: ExecutionAttempt, error: BaseException) -> float:
        """Classify a failed attempt; raise if done, else return the backoff delay."""
        attempt.finished_at = utcnow()
        attempt.error = error
        self.last_error = error

        try:
            transient = self.policy.detection.is_transient(error)
        except Exception as exc:
            attempt.outcome = AttemptOutcome.FATAL_FAILURE
            self._give_up(attempt, FailureReason.NON_TRANSIENT)
            raise exc from error

        if not transient:
            attempt.outcome = AttemptOutcome.FATAL_FAILURE
            self._give_up(attempt, FailureReason.NON_TRANSIENT)
            logger.error(
                "retry_non_transient",
                **self._log_fields(
                    attempt=attempt.number,
                    error_type=type(error).__name__,
                    error=str(error),
                ),
            )
            raise error

        attempt.outcome = AttemptOutcome.TRANSIENT_FAILURE
        logger.info(
            "retry_attempt_failed",
            **self._log_fields(
                attempt=attempt.number,
                error_type=type(error).__name__,
                error=str(error),
            ),
        )

        if attempt.number >= self.max_attempts:
            self._give_up(attempt, FailureReason.EXHAUSTED)
            logger.error(
                "retry_exhausted",
                **self._log_fields(
                    attempts=attempt.number,
                    elapsed=self.elapsed_seconds,
                    error_type=type(error).__name__,
                    error=str(error),
                ),
            )
            if self.policy.wrap_exhausted:
                raise RetriesExhaustedError(attempt.number, error) from error
            raise error

        try:
            delay = self.policy.delay_for(attempt.number, error)
        except Exception as exc:
            self._give_up(attempt, FailureReason.NON_TRANSIENT)
            raise exc from error
        attempt.delay = delay
        self._transition(ExecutionState.BACKOFF)
        logger.warning(
            "retry_scheduled",
            **self._log_fields(attempt=attempt.number, delay=round(delay, 3)),
        )
        if self.policy.on_retry is not None:
            try:
                self.policy.on_retry(attempt.number, error, delay)
            except Exception as exc:
                self._give_up(attempt, FailureReason.NON_TRANSIENT)
                raise exc from error
        return delay

    def _give_up(self, attempt: ExecutionAttempt | None, reason: FailureReason) -> None:
        self.state = ExecutionState.FAILED
        self.failure_reason = reason
        self.finished_at = utcnow()
        if self.policy.on_give_up is not None:
            self.policy.on_give_up(reason, attempt or (self.attempts[-1] if self.attempts else None))

    def _cancelled(
        self,
        attempt: ExecutionAttempt | None,
        token: CancellationToken | None,
    ) -> RetryCancelledError:
        """Record cancellation; return the error to raise for token cancellation."""
        if attempt is not None:
            attempt.finished_at = utcnow()
            attempt.outcome = AttemptOutcome.CANCELLED
        self._give_up(attempt, FailureReason.CANCELLED)
        logger.warning(
            "retry_cancelled",
            **self._log_fields(
                attempts=self.attempt_count,
                source="token" if token is not None else "task",
                reason=token.reason if token is not None else None,
            ),
        )
        return RetryCancelledError(
            attempts=self.attempt_count,
            reason=token.reason if token is not None else None,
            cause=self.last_error,
        )


__all__ = [
    "ExecutionState",
    "AttemptOutcome",
    "FailureReason",
    "ExecutionAttempt",
    "RetryExecution",
]
