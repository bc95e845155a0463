"""
Canonical protocol definitions for cloudretry.

Every module that needs a database connection, a transaction or an RPC
transport imports the contract from here. Implementations live with the
caller (a real driver) or in the in-memory fakes used by tests.

Architecture:
    ::

        protocols.py
        ├── AsyncTransaction   commit / rollback
        ├── AsyncConnection    open / begin_transaction / close
        ├── ConnectionFactory  zero-arg callable returning a connection
        └── Transport          unary RPC call

Guardrails:
    ❌ DON'T: Add implementation logic to protocol classes
    ✅ DO: Keep protocols pure contracts, implementations go in adapters

Tags:
    protocol, connection, transaction, transport, cloudretry, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AsyncTransaction(Protocol):
    """A read-write transaction opened on a connection."""

    async def commit(self) -> Any:
        """Commit all buffered writes. May return a commit timestamp."""
        ...

    async def rollback(self) -> None:
        """Discard all buffered writes."""
        ...


@runtime_checkable
class AsyncConnection(Protocol):
    """
    Minimal async connection to a remote database session.

    Lifecycle: ``open()`` → ``begin_transaction()`` → work → ``close()``.
    ``close()`` must be safe to call on a connection whose ``open()`` failed.
    """

    async def open(self) -> None:
        ...

    async def begin_transaction(self) -> AsyncTransaction:
        ...

    async def close(self) -> None:
        ...


ConnectionFactory = Callable[[], AsyncConnection]


@runtime_checkable
class Transport(Protocol):
    """
    Capability to make a unary remote procedure call.

    Generated clients talk to the service only through this interface so
    that tests can inject a fake in place of the network.
    """

    async def unary_call(
        self,
        method: str,
        request: Any,
        *,
        timeout: float | None = None,
    ) -> Any:
        ...


__all__ = [
    "AsyncTransaction",
    "AsyncConnection",
    "ConnectionFactory",
    "Transport",
]
