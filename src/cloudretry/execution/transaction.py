"""Transactional scopes: commit only on completion, release on every path.

A :class:`TransactionScope` is the per-attempt resource boundary used
inside a retried unit of work. Entering it opens a connection and begins a
transaction; leaving it commits (if :meth:`TransactionScope.complete` was
called and nothing is propagating) or rolls back, and always closes the
connection. Because the scope lives entirely inside one attempt, a failed
attempt has released everything before the executor starts its backoff.

Manifesto:
    Retry policy and transaction scope are independent layers. Compose
    them as *retry outside, scope inside*::

        await transactional(policy, connect, insert_rows)

    which is shorthand for::

        await policy.execute(lambda: run_in_transaction(connect, insert_rows))

    Retrying *inside* a scope re-runs statements against a transaction the
    server may already have aborted; the executor logs a warning when it
    starts under an ambient scope.

Architecture:
    ::

        async with TransactionScope(connect) as scope:   # open + begin
            await write(scope.connection, ...)
            scope.complete()
        # exit: complete & no error → commit
        #       otherwise            → rollback
        #       always               → close

        Nested scope (join_ambient=True):
            joins the outer transaction; exiting without complete()
            dooms the outer scope, whose completion then rolls back and
            raises TransactionError.

Tags:
    transaction, scope, contextvars, resource-cleanup, cloudretry

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar, Token
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from cloudretry.core.errors import TransactionError
from cloudretry.core.logging import get_logger
from cloudretry.core.protocols import AsyncConnection, AsyncTransaction, ConnectionFactory
from cloudretry.core.result import Err

if TYPE_CHECKING:
    from cloudretry.execution.cancellation import CancellationToken
    from cloudretry.execution.policy import RetryPolicy

T = TypeVar("T")

logger = get_logger(__name__)

_current_scope: ContextVar[TransactionScope | None] = ContextVar(
    "cloudretry_transaction_scope", default=None
)


def current_scope() -> TransactionScope | None:
    """The ambient scope of the running task, if any."""
    return _current_scope.get()


class ScopeState(str, Enum):
    CREATED = "created"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    CLOSED = "closed"  # joined scope exited; the outer scope decides


class TransactionScope:
    """
    Async context manager bounding one transaction.

    Args:
        connect: Zero-argument factory returning an unopened connection
        name: Label used in logs
        join_ambient: Join an enclosing scope instead of opening a new
            connection (default True)
    """

    def __init__(
        self,
        connect: ConnectionFactory,
        *,
        name: str | None = None,
        join_ambient: bool = True,
    ) -> None:
        self._connect = connect
        self.name = name
        self.join_ambient = join_ambient
        self.scope_id = uuid.uuid4().hex[:12]
        self.commit_result: Any = None
        self._state = ScopeState.CREATED
        self._completed = False
        self._doomed = False
        self._outer: TransactionScope | None = None
        self._connection: AsyncConnection | None = None
        self._transaction: AsyncTransaction | None = None
        self._token: Token[TransactionScope | None] | None = None

    @property
    def state(self) -> ScopeState:
        return self._state

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def joined(self) -> bool:
        return self._outer is not None

    @property
    def connection(self) -> AsyncConnection:
        if self._state is not ScopeState.ACTIVE or self._connection is None:
            raise TransactionError("Transaction scope is not active")
        return self._connection

    @property
    def transaction(self) -> AsyncTransaction:
        if self._state is not ScopeState.ACTIVE or self._transaction is None:
            raise TransactionError("Transaction scope is not active")
        return self._transaction

    def complete(self) -> None:
        """Vote to commit. The commit itself happens when the block exits."""
        if self._state is not ScopeState.ACTIVE:
            raise TransactionError("complete() called outside an active transaction scope")
        if self._completed:
            raise TransactionError("complete() called more than once")
        self._completed = True

    async def __aenter__(self) -> TransactionScope:
        if self._state is not ScopeState.CREATED:
            raise TransactionError("Transaction scopes cannot be re-entered")

        outer = current_scope()
        if outer is not None and self.join_ambient:
            self._outer = outer
            self._connection = outer.connection
            self._transaction = outer.transaction
        else:
            connection = self._connect()
            try:
                await connection.open()
                self._transaction = await connection.begin_transaction()
            except BaseException:
                await connection.close()
                raise
            self._connection = connection

        self._token = _current_scope.set(self)
        self._state = ScopeState.ACTIVE
        logger.debug(
            "transaction_scope_entered",
            scope=self.name,
            scope_id=self.scope_id,
            joined=self.joined,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc: BaseException | None, tb: Any) -> None:
        if self._token is not None:
            _current_scope.reset(self._token)
            self._token = None

        if self._outer is not None:
            if exc is not None or not self._completed:
                self._outer._doomed = True
            self._state = ScopeState.CLOSED
            return

        error = exc
        try:
            if exc is None and self._completed and not self._doomed:
                await self._commit()
                return
            await self._rollback(exc)
            if exc is None and self._completed:
                raise TransactionError("Transaction rolled back: a nested scope did not complete")
        except BaseException as raised:
            error = raised
            raise
        finally:
            await self._close(error)

    def _open_transaction(self) -> AsyncTransaction:
        if self._transaction is None:
            raise TransactionError("Transaction scope has no open transaction")
        return self._transaction

    async def _commit(self) -> None:
        transaction = self._open_transaction()
        try:
            self.commit_result = await transaction.commit()
        except BaseException:
            self._state = ScopeState.ROLLED_BACK
            logger.warning("transaction_commit_failed", scope=self.name, scope_id=self.scope_id)
            raise
        self._state = ScopeState.COMMITTED
        logger.debug("transaction_committed", scope=self.name, scope_id=self.scope_id)

    async def _rollback(self, exc: BaseException | None) -> None:
        transaction = self._open_transaction()
        try:
            await transaction.rollback()
        except Exception:
            if exc is None:
                raise
            # The error already propagating is the one the caller must see.
            logger.exception("transaction_rollback_failed", scope=self.name, scope_id=self.scope_id)
        finally:
            self._state = ScopeState.ROLLED_BACK
        logger.debug(
            "transaction_rolled_back",
            scope=self.name,
            scope_id=self.scope_id,
            completed=self._completed,
            error_type=type(exc).__name__ if exc is not None else None,
        )

    async def _close(self, exc: BaseException | None) -> None:
        if self._connection is None:
            raise TransactionError("Transaction scope has no open connection")
        try:
            await self._connection.close()
        except Exception:
            if exc is None:
                raise
            logger.exception("connection_close_failed", scope=self.name, scope_id=self.scope_id)

    def __repr__(self) -> str:
        return f"TransactionScope(name={self.name!r}, state={self._state.value})"


async def run_in_transaction(
    connect: ConnectionFactory,
    work: Callable[[TransactionScope], Awaitable[T]],
    *,
    name: str | None = None,
) -> T:
    """Run ``work`` inside a fresh scope and complete it if ``work`` succeeds.

    A ``work`` returning ``Err`` leaves the scope uncompleted, so its writes
    are rolled back and the ``Err`` is handed back to the caller.
    """
    async with TransactionScope(connect, name=name) as scope:
        result = await work(scope)
        if not isinstance(result, Err):
            scope.complete()
    return result


async def transactional(
    policy: RetryPolicy,
    connect: ConnectionFactory,
    work: Callable[[TransactionScope], Awaitable[T]],
    *,
    cancel: CancellationToken | None = None,
    name: str | None = None,
) -> T:
    """Retry ``work`` under ``policy``, each attempt in its own transaction."""
    return await policy.execute(
        lambda: run_in_transaction(connect, work, name=name),
        cancel=cancel,
        operation=name,
    )


__all__ = [
    "ScopeState",
    "TransactionScope",
    "current_scope",
    "run_in_transaction",
    "transactional",
]
