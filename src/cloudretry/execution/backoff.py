"""Backoff schedules: exponential, linear, constant, and no-retry.

A schedule answers two questions for the retry executor: how many times
may the unit of work be invoked (``max_attempts``), and how long to wait
after attempt ``n`` fails (``next_delay(n)``).

Example:
    >>> from cloudretry.execution.backoff import ExponentialBackoff
    >>>
    >>> schedule = ExponentialBackoff(max_attempts=5, base_delay=1.0, jitter=False)
    >>> schedule.delays()
    [1.0, 2.0, 4.0, 8.0]
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class BackoffSchedule(ABC):
    """Abstract base for backoff schedules."""

    max_attempts: int

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Calculate delay before the attempt following ``attempt``.

        Args:
            attempt: 1-based number of the attempt that just failed

        Returns:
            Delay in seconds before the next attempt
        """
        ...

    def delays(self) -> list[float]:
        """Delays for every retry the schedule allows, in order."""
        return [self.next_delay(attempt) for attempt in range(1, self.max_attempts)]


def _check_attempts(max_attempts: int) -> None:
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")


def _check_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


@dataclass
class ExponentialBackoff(BackoffSchedule):
    """Exponential backoff with optional jitter.

    Delay = min(base_delay * (multiplier ** (attempt - 1)) ± jitter, max_delay)

    Jitter is applied before the cap, so no delay exceeds ``max_delay``.

    Attributes:
        max_attempts: Total invocations allowed, first attempt included
        base_delay: Delay after the first failure, in seconds
        max_delay: Maximum delay cap in seconds
        multiplier: Exponential multiplier (default: 2)
        jitter: Add randomness to prevent thundering herd
        jitter_range: Range of jitter as fraction of delay (0.0-1.0)
        rng: Random source, injectable for deterministic tests
    """

    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: bool = True
    jitter_range: float = 0.25
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    def __post_init__(self) -> None:
        _check_attempts(self.max_attempts)
        _check_non_negative("base_delay", self.base_delay)
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})"
            )
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be >= 1, got {self.multiplier}")
        if not 0.0 <= self.jitter_range <= 1.0:
            raise ValueError(f"jitter_range must be within [0, 1], got {self.jitter_range}")

    def next_delay(self, attempt: int) -> float:
        """Calculate exponential backoff delay."""
        try:
            delay = self.base_delay * self.multiplier ** max(attempt - 1, 0)
        except OverflowError:
            delay = self.max_delay if self.base_delay else 0.0
        delay = min(delay, self.max_delay)

        if self.jitter:
            jitter_amount = delay * self.jitter_range
            delay += self.rng.uniform(-jitter_amount, jitter_amount)
            delay = min(max(0.0, delay), self.max_delay)

        return delay


@dataclass
class LinearBackoff(BackoffSchedule):
    """Linear (incremental) backoff.

    Delay = min(base_delay + increment * (attempt - 1), max_delay)
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    increment: float = 1.0
    max_delay: float = 30.0

    def __post_init__(self) -> None:
        _check_attempts(self.max_attempts)
        _check_non_negative("base_delay", self.base_delay)
        _check_non_negative("increment", self.increment)
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})"
            )

    def next_delay(self, attempt: int) -> float:
        """Calculate linear backoff delay."""
        return min(
            self.base_delay + self.increment * max(attempt - 1, 0),
            self.max_delay,
        )


@dataclass
class ConstantBackoff(BackoffSchedule):
    """Fixed interval between attempts."""

    max_attempts: int = 3
    delay: float = 1.0

    def __post_init__(self) -> None:
        _check_attempts(self.max_attempts)
        _check_non_negative("delay", self.delay)

    def next_delay(self, attempt: int) -> float:
        return self.delay


@dataclass
class NoRetry(BackoffSchedule):
    """Single attempt, fail immediately."""

    max_attempts: int = field(default=1, init=False)

    def next_delay(self, attempt: int) -> float:
        return 0.0


def default_exponential() -> ExponentialBackoff:
    """The stock schedule for database snippets: 10 attempts, 1s doubling to 30s."""
    return ExponentialBackoff(
        max_attempts=10,
        base_delay=1.0,
        max_delay=30.0,
        multiplier=2.0,
        jitter=True,
    )


__all__ = [
    "BackoffSchedule",
    "ExponentialBackoff",
    "LinearBackoff",
    "ConstantBackoff",
    "NoRetry",
    "default_exponential",
]
