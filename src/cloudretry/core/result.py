"""
Ok / Err values for units of work that report failure without raising.

The retry executor accepts either style from a unit of work: raise, or
return a :data:`Result`. An ``Err`` is classified by the policy's fault
detection exactly like a raised error, and an ``Ok`` is unwrapped before the
value reaches the caller::

    async def insert_rows(scope) -> Result[int]:
        if not rows:
            return Err(ValidationError("nothing to insert"))
        ...
        return Ok(len(rows))

    inserted = await transactional(policy, connect, insert_rows)   # int, not Ok[int]

Examples:
    >>> Ok(10).map(lambda n: n * 2).unwrap()
    20
    >>> Err(NetworkError("reset")).retryable
    True
    >>> match policy_result:
    ...     case Ok(rows): print(rows)
    ...     case Err(error): print(error)

Tags:
    result-pattern, error-handling, cloudretry

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from cloudretry.core.errors import CloudError, is_retryable


T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """The unit of work produced ``value``."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_or_else(self, fallback: Callable[[Exception], T]) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        return Ok(f(self.value))

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        return f(self.value)

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    The unit of work failed with ``error``.

    Value-side operations (``map``, ``flat_map``) skip the function and keep
    the error; ``unwrap`` raises it.
    """

    error: Exception

    @property
    def retryable(self) -> bool:
        """Whether the error marks itself as worth retrying."""
        return is_retryable(self.error)

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_or_else(self, fallback: Callable[[Exception], T]) -> T:
        return fallback(self.error)

    def map(self, f: Callable[[T], U]) -> Result[U]:
        return Err(self.error)

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        return Err(self.error)

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        return Err(f(self.error))

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, CloudError):
            detail = self.error.to_dict()
        else:
            detail = {"error_type": type(self.error).__name__, "message": str(self.error)}
        return {"ok": False, "error": detail}


Result = Ok[T] | Err[T]


def try_result(f: Callable[[], T]) -> Result[T]:
    """Call ``f`` and capture a raised ``Exception`` as ``Err``."""
    try:
        return Ok(f())
    except Exception as e:
        return Err(e)


async def try_result_async(f: Callable[[], Awaitable[T]]) -> Result[T]:
    """Await ``f()`` and capture a raised ``Exception`` as ``Err``.

    ``asyncio.CancelledError`` is not an ``Exception`` and still propagates.
    """
    try:
        return Ok(await f())
    except Exception as e:
        return Err(e)


__all__ = [
    "Ok",
    "Err",
    "Result",
    "try_result",
    "try_result_async",
]
