"""In-memory test doubles for retried units of work.

Architecture::

    InMemoryDatabase          tables + connection bookkeeping + fault injection
    ├── InMemoryConnection    AsyncConnection: open / begin_transaction / close
    └── InMemoryTransaction   AsyncTransaction: buffered writes, commit / rollback

    FlakyOperation            zero-arg async callable replaying scripted outcomes

Example::

    db = InMemoryDatabase()
    db.fail_next_commits(TransactionAbortedError("Transaction was aborted."))

    async def insert(scope):
        for i in range(5):
            scope.transaction.insert("TestTable", {"Key": f"k{i}", "Int64Value": i})

    await transactional(policy, db.connect, insert)
    assert len(db.rows("TestTable")) == 5
    assert db.open_connections == 0
"""

from __future__ import annotations

import itertools
from collections import deque
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from cloudretry.core.errors import DatabaseError, TransactionError


class InMemoryTransaction:
    """Buffers writes until commit."""

    def __init__(self, connection: InMemoryConnection, transaction_id: int) -> None:
        self.connection = connection
        self.transaction_id = transaction_id
        self.pending: list[tuple[str, dict[str, Any]]] = []
        self.finished = False

    def insert(self, table: str, row: dict[str, Any]) -> None:
        if self.finished:
            raise TransactionError("Transaction already finished")
        self.pending.append((table, dict(row)))

    async def commit(self) -> datetime:
        if self.finished:
            raise TransactionError("Transaction already finished")
        self.finished = True
        return self.connection.database._commit(self)

    async def rollback(self) -> None:
        self.finished = True
        self.pending.clear()
        self.connection.database.rollbacks += 1


class InMemoryConnection:
    """Connection to an :class:`InMemoryDatabase`."""

    def __init__(self, database: InMemoryDatabase) -> None:
        self.database = database
        self.is_open = False
        self.closed = False

    async def open(self) -> None:
        self.database._on_open(self)
        self.is_open = True

    async def begin_transaction(self) -> InMemoryTransaction:
        if not self.is_open:
            raise DatabaseError("Connection is not open")
        return InMemoryTransaction(self, next(self.database._transaction_ids))

    async def close(self) -> None:
        if self.is_open and not self.closed:
            self.database._on_close(self)
        self.closed = True
        self.is_open = False

    def select(self, table: str) -> list[dict[str, Any]]:
        return self.database.rows(table)


class InMemoryDatabase:
    """A dict-of-tables database that counts connections and commits.

    ``fail_next_opens`` / ``fail_next_commits`` queue exceptions raised by the
    next ``open()`` / ``commit()`` calls, one per call.
    """

    def __init__(self) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = {}
        self._transaction_ids = itertools.count(1)
        self._open_failures: deque[BaseException] = deque()
        self._commit_failures: deque[BaseException] = deque()
        self.open_connections = 0
        self.connections_opened = 0
        self.commits = 0
        self.rollbacks = 0

    def connect(self) -> InMemoryConnection:
        """Connection factory suitable for ``TransactionScope``."""
        return InMemoryConnection(self)

    def rows(self, table: str) -> list[dict[str, Any]]:
        return [dict(row) for row in self._tables.get(table, [])]

    def fail_next_opens(self, *errors: BaseException) -> None:
        self._open_failures.extend(errors)

    def fail_next_commits(self, *errors: BaseException) -> None:
        self._commit_failures.extend(errors)

    def _on_open(self, connection: InMemoryConnection) -> None:
        if self._open_failures:
            raise self._open_failures.popleft()
        self.open_connections += 1
        self.connections_opened += 1

    def _on_close(self, connection: InMemoryConnection) -> None:
        self.open_connections -= 1

    def _commit(self, transaction: InMemoryTransaction) -> datetime:
        if self._commit_failures:
            transaction.pending.clear()
            raise self._commit_failures.popleft()
        for table, row in transaction.pending:
            self._tables.setdefault(table, []).append(row)
        transaction.pending.clear()
        self.commits += 1
        return datetime.now(timezone.utc)


class FlakyOperation:
    """Zero-argument async callable replaying a script of outcomes.

    Exceptions in the script are raised, anything else (including
    ``Ok``/``Err``) is returned. After the script runs out the last outcome
    repeats.
    """

    def __init__(self, outcomes: Iterable[Any]) -> None:
        self._outcomes = list(outcomes)
        if not self._outcomes:
            raise ValueError("FlakyOperation needs at least one outcome")
        self.calls = 0

    def _next(self) -> Any:
        outcome = self._outcomes[min(self.calls, len(self._outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def __call__(self) -> Any:
        return self._next()

    def call_sync(self) -> Any:
        return self._next()


__all__ = [
    "InMemoryDatabase",
    "InMemoryConnection",
    "InMemoryTransaction",
    "FlakyOperation",
]
