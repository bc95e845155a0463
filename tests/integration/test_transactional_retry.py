"""End-to-end: retried transactional writes against an in-memory database."""

import asyncio

import pytest

from cloudretry.core.errors import RetryCancelledError
from cloudretry.execution import (
    CancellationToken,
    ExponentialBackoff,
    FailureReason,
    RetryPolicy,
    RpcStatusDetection,
    transactional,
)
from cloudretry.rpc import RpcError, StatusCode


def insert_rows(count):
    async def work(scope):
        for i in range(count):
            scope.transaction.insert("TestTable", {"Key": f"k{i}", "StringValue": f"Row {i}", "Int64Value": i})
        return count

    return work


@pytest.fixture
def session_policy():
    return RetryPolicy(
        RpcStatusDetection(),
        ExponentialBackoff(max_attempts=10, base_delay=0.001, max_delay=0.004, jitter=False),
    )


class TestTransactionalRetry:
    @pytest.mark.asyncio
    async def test_aborted_commits_are_retried_until_success(self, db, session_policy):
        db.fail_next_commits(
            RpcError(StatusCode.ABORTED, "Transaction was aborted."),
            RpcError(StatusCode.UNAVAILABLE, "Session not ready"),
        )

        inserted = await transactional(session_policy, db.connect, insert_rows(5), name="insert_rows")

        assert inserted == 5
        assert len(db.rows("TestTable")) == 5
        assert db.commits == 1
        assert db.connections_opened == 3
        assert db.open_connections == 0

    @pytest.mark.asyncio
    async def test_stream_reset_on_open_is_retried(self, db, session_policy):
        db.fail_next_opens(RpcError(StatusCode.INTERNAL, "Received unexpected EOS on DATA frame from server"))

        await transactional(session_policy, db.connect, insert_rows(2))

        assert len(db.rows("TestTable")) == 2
        assert db.open_connections == 0

    @pytest.mark.asyncio
    async def test_constraint_violation_is_not_retried(self, db, session_policy):
        db.fail_next_commits(RpcError(StatusCode.ALREADY_EXISTS, "Row [k0] already exists"))

        with pytest.raises(RpcError) as exc_info:
            await transactional(session_policy, db.connect, insert_rows(5))

        assert exc_info.value.code is StatusCode.ALREADY_EXISTS
        assert db.connections_opened == 1
        assert db.rows("TestTable") == []
        assert db.open_connections == 0

    @pytest.mark.asyncio
    async def test_cancellation_releases_connections(self, db):
        token = CancellationToken()
        reasons = []
        policy = RetryPolicy(
            RpcStatusDetection(),
            ExponentialBackoff(max_attempts=10, base_delay=30.0, max_delay=30.0, jitter=False),
            on_give_up=lambda reason, attempt: reasons.append(reason),
        )
        db.fail_next_commits(*[RpcError(StatusCode.ABORTED) for _ in range(10)])

        task = asyncio.create_task(transactional(policy, db.connect, insert_rows(5), cancel=token))
        while db.connections_opened == 0 or db.open_connections:
            await asyncio.sleep(0.001)
        token.cancel("deploy")

        with pytest.raises(RetryCancelledError) as exc_info:
            await asyncio.wait_for(task, timeout=5)

        assert exc_info.value.reason == "deploy"
        assert reasons == [FailureReason.CANCELLED]
        assert db.connections_opened == 1
        assert db.open_connections == 0
        assert db.rows("TestTable") == []
