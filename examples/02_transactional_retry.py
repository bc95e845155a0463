#!/usr/bin/env python3
"""Transactional Retry: retry outside, transaction scope inside.

Each attempt opens its own connection and transaction. A failed attempt
rolls back and closes before the backoff starts, so the next attempt
begins from a clean slate.

    transactional(policy, connect, work)
        └── policy.execute
              └── attempt n: TransactionScope → work(scope) → complete → commit

Run: python examples/02_transactional_retry.py
"""
import asyncio

from cloudretry.core.errors import RetryCancelledError
from cloudretry.core.logging import configure_logging
from cloudretry.execution import (
    CancellationToken,
    ExponentialBackoff,
    RetryPolicy,
    RpcStatusDetection,
    transactional,
)
from cloudretry.execution.fakes import InMemoryDatabase
from cloudretry.rpc import RpcError, StatusCode


async def insert_rows(scope):
    for i in range(5):
        scope.transaction.insert("TestTable", {"Key": f"k{i}", "StringValue": f"Row {i}", "Int64Value": i})
    return 5


async def main():
    configure_logging(level="INFO", json_format=False)
    policy = RetryPolicy(
        RpcStatusDetection(),
        ExponentialBackoff(max_attempts=10, base_delay=0.05, max_delay=1.0),
    )

    # === 1. Aborted commit, then success ===
    print("\n[1] Aborted Commit Is Retried")
    db = InMemoryDatabase()
    db.fail_next_commits(RpcError(StatusCode.ABORTED, "Transaction was aborted."))
    inserted = await transactional(policy, db.connect, insert_rows, name="insert_rows")
    print(f"  Inserted {inserted} rows; table has {len(db.rows('TestTable'))}")
    print(f"  Connections opened: {db.connections_opened}, still open: {db.open_connections}")

    # === 2. Cancellation during backoff ===
    print("\n[2] Cancellation During Backoff")
    db = InMemoryDatabase()
    db.fail_next_commits(*[RpcError(StatusCode.UNAVAILABLE) for _ in range(10)])
    token = CancellationToken()
    slow = RetryPolicy(RpcStatusDetection(), ExponentialBackoff(max_attempts=10, base_delay=5.0))

    async def shutdown_soon():
        await asyncio.sleep(0.1)
        token.cancel("shutting down")

    asyncio.get_running_loop().create_task(shutdown_soon())
    try:
        await transactional(slow, db.connect, insert_rows, cancel=token)
    except RetryCancelledError as e:
        print(f"  {e} after {e.attempts} attempt(s); still open: {db.open_connections}")


if __name__ == "__main__":
    asyncio.run(main())
