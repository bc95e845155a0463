#!/usr/bin/env python3
"""Retry Policies: fault detection plus a backoff schedule.

WHAT A POLICY DECIDES
─────────────────────
    question                          answered by
    ───────────────────────────────── ──────────────────────────
    is this error worth retrying?     FaultDetectionStrategy
    how many invocations in total?    BackoffSchedule.max_attempts
    how long to wait after attempt n? BackoffSchedule.next_delay(n)

BACKOFF TIMING: EXPONENTIAL (base=1s, mult=2x, max_attempts=5)
──────────────────────────────────────────────────────────────
    After attempt  Delay   Cumulative
    ────────────── ─────── ──────────
    1              1.0 s   1.0 s
    2              2.0 s   3.0 s
    3              4.0 s   7.0 s
    4              8.0 s   15.0 s

    Attempt 5 is the last one; no delay follows it.

Run: python examples/01_retry_policies.py
"""
import asyncio

from cloudretry.core.errors import NetworkError, ValidationError
from cloudretry.execution import (
    ConstantBackoff,
    ExponentialBackoff,
    LinearBackoff,
    NoRetry,
    RetryExecution,
    RetryPolicy,
    with_retry,
)
from cloudretry.execution.fakes import FlakyOperation


async def main():
    print("=" * 60)
    print("Retry Policy Examples")
    print("=" * 60)

    # === 1. Backoff schedules ===
    print("\n[1] Backoff Schedules")

    schedules = [
        ("NoRetry", NoRetry()),
        ("ConstantBackoff(1s, 3 attempts)", ConstantBackoff(max_attempts=3, delay=1.0)),
        ("LinearBackoff(1s +0.5s, 4 attempts)", LinearBackoff(max_attempts=4, increment=0.5)),
        ("ExponentialBackoff(1s x2, 5 attempts)", ExponentialBackoff(max_attempts=5, jitter=False)),
    ]
    for name, schedule in schedules:
        print(f"  {name}: delays={schedule.delays()}")

    # === 2. Transient errors are retried ===
    print("\n[2] Transient Errors Are Retried")

    policy = RetryPolicy(backoff=ExponentialBackoff(max_attempts=4, base_delay=0.05, jitter=False))
    op = FlakyOperation([NetworkError("connection reset"), NetworkError("connection reset"), "rows=5"])
    execution = RetryExecution(policy, operation="insert_rows")
    result = await execution.run(op)
    print(f"  Result: {result} after {execution.attempt_count} attempts")
    for attempt in execution.attempts:
        print(f"    #{attempt.number}: {attempt.outcome.value} (delay={attempt.delay})")

    # === 3. Fatal errors are not ===
    print("\n[3] Fatal Errors Stop Immediately")

    op = FlakyOperation([ValidationError("column Int64Value rejects text"), "never"])
    try:
        await policy.execute(op)
    except ValidationError as e:
        print(f"  Raised {type(e).__name__} after {op.calls} call(s)")

    # === 4. with_retry decorator ===
    print("\n[4] with_retry Decorator")

    calls = 0

    @with_retry(RetryPolicy(backoff=ConstantBackoff(max_attempts=3, delay=0.05)))
    async def fetch_session(database: str) -> str:
        nonlocal calls
        calls += 1
        if calls < 2:
            raise ConnectionError("Simulated failure")
        return f"session for {database}"

    print(f"  {await fetch_session('orders')} (calls={calls})")

    print("\n" + "=" * 60)
    print("[OK] Retry Policies Complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
