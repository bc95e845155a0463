"""Cooperative cancellation tokens for retry loops.

A :class:`CancellationToken` lets the caller withdraw permission to keep
retrying without cancelling the surrounding asyncio task. The executor
checks it before every attempt, races it against an in-flight attempt and
against the backoff wait.

Example:
    >>> token = CancellationToken()
    >>> task = asyncio.create_task(policy.execute(op, cancel=token))
    >>> token.cancel("shutting down")
"""

from __future__ import annotations

import asyncio
import threading

from cloudretry.core.errors import RetryCancelledError


class CancellationToken:
    """
    One-shot cancellation signal, safe to fire from any thread.

    Async waiters are bound to the event loop that first waits on the
    token; ``cancel()`` wakes them with ``call_soon_threadsafe``.
    """

    def __init__(self) -> None:
        self._flag = threading.Event()
        self._reason: str | None = None
        self._event: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def cancelled(self) -> bool:
        return self._flag.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Signal cancellation. Later calls keep the first reason."""
        if self._flag.is_set():
            return
        self._reason = reason
        self._flag.set()
        if self._event is not None and self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._event.set)

    def raise_if_cancelled(self, attempts: int = 0) -> None:
        if self.cancelled:
            raise RetryCancelledError(attempts=attempts, reason=self._reason)

    def _async_event(self) -> asyncio.Event:
        if self._event is None:
            self._loop = asyncio.get_running_loop()
            self._event = asyncio.Event()
            if self._flag.is_set():
                self._event.set()
        return self._event

    async def wait_cancelled(self) -> None:
        """Suspend until the token is cancelled."""
        await self._async_event().wait()

    async def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True if cancelled meanwhile."""
        if self.cancelled:
            return True
        try:
            await asyncio.wait_for(self.wait_cancelled(), timeout)
        except TimeoutError:
            return False
        return True

    def wait_sync(self, timeout: float) -> bool:
        """Blocking counterpart of :meth:`wait`."""
        return self._flag.wait(timeout)

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"CancellationToken({state})"


__all__ = ["CancellationToken"]
