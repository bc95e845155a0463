"""Retry execution: schedules, fault detection, the executor and scopes.

Quick start::

    from cloudretry.execution import (
        RetryPolicy, RpcStatusDetection, default_exponential, transactional,
    )

    policy = RetryPolicy(RpcStatusDetection(), default_exponential())
    await transactional(policy, connect, insert_rows)

Architecture::

    backoff.py        BackoffSchedule + exponential / linear / constant / none
    detection.py      FaultDetectionStrategy implementations
    cancellation.py   CancellationToken
    executor.py       RetryExecution state machine
    policy.py         RetryPolicy, with_retry, retry_once
    transaction.py    TransactionScope, run_in_transaction, transactional
    fakes.py          In-memory database and flaky operations for tests
"""

from cloudretry.execution.backoff import (
    BackoffSchedule,
    ConstantBackoff,
    ExponentialBackoff,
    LinearBackoff,
    NoRetry,
    default_exponential,
)
from cloudretry.execution.cancellation import CancellationToken
from cloudretry.execution.detection import (
    AlwaysTransient,
    AnyOf,
    ErrorTypeDetection,
    FaultDetectionStrategy,
    NeverTransient,
    PredicateDetection,
    RetryableErrorDetection,
    RpcStatusDetection,
)
from cloudretry.execution.executor import (
    AttemptOutcome,
    ExecutionAttempt,
    ExecutionState,
    FailureReason,
    RetryExecution,
)
from cloudretry.execution.policy import RetryPolicy, retry_once, retry_once_async, with_retry
from cloudretry.execution.transaction import (
    ScopeState,
    TransactionScope,
    current_scope,
    run_in_transaction,
    transactional,
)

__all__ = [
    # backoff
    "BackoffSchedule",
    "ExponentialBackoff",
    "LinearBackoff",
    "ConstantBackoff",
    "NoRetry",
    "default_exponential",
    # detection
    "FaultDetectionStrategy",
    "RetryableErrorDetection",
    "ErrorTypeDetection",
    "RpcStatusDetection",
    "PredicateDetection",
    "AlwaysTransient",
    "NeverTransient",
    "AnyOf",
    # executor
    "CancellationToken",
    "ExecutionState",
    "AttemptOutcome",
    "FailureReason",
    "ExecutionAttempt",
    "RetryExecution",
    # policy
    "RetryPolicy",
    "with_retry",
    "retry_once",
    "retry_once_async",
    # transaction
    "ScopeState",
    "TransactionScope",
    "current_scope",
    "run_in_transaction",
    "transactional",
]
