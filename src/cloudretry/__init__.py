"""
cloudretry: retry-and-transaction execution for cloud API clients.

Runs remote calls that can fail transiently under a retry policy (fault
detection strategy + backoff schedule), with transactional scopes that
release every connection an attempt opened.

Quick start::

    from cloudretry import RetryPolicy, RpcStatusDetection, default_exponential
    from cloudretry.execution import transactional

    policy = RetryPolicy(RpcStatusDetection(), default_exponential())
    await transactional(policy, connect, insert_rows)

Packages::

    core/        errors, result, logging, protocols, config
    execution/   backoff, detection, executor, policy, transaction
    rpc/         status codes, transport-injected client, fakes
    cli/         ``cloudretry`` command
"""

__version__ = "0.1.0"

from cloudretry.core.errors import (
    CloudError,
    RetriesExhaustedError,
    RetryCancelledError,
    TransientError,
)
from cloudretry.core.result import Err, Ok, Result
from cloudretry.execution import (
    CancellationToken,
    ExponentialBackoff,
    RetryPolicy,
    RpcStatusDetection,
    TransactionScope,
    default_exponential,
    transactional,
)

__all__ = [
    "__version__",
    "CloudError",
    "TransientError",
    "RetriesExhaustedError",
    "RetryCancelledError",
    "Ok",
    "Err",
    "Result",
    "CancellationToken",
    "ExponentialBackoff",
    "RetryPolicy",
    "RpcStatusDetection",
    "TransactionScope",
    "default_exponential",
    "transactional",
]
