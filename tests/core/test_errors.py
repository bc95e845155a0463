"""Tests for cloudretry.core.errors module."""

import pytest

from cloudretry.core.errors import (
    AttemptTimeoutError,
    CloudError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    NetworkError,
    RateLimitError,
    ServiceUnavailableError,
    RetriesExhaustedError,
    RetryCancelledError,
    TransactionAbortedError,
    TransactionError,
    TransientError,
    ValidationError,
    categorize_error,
    get_retry_after,
    is_retryable,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        ctx = ErrorContext()
        assert ctx.operation is None
        assert ctx.attempt is None
        assert ctx.metadata == {}
        assert ctx.to_dict() == {}

    def test_to_dict_skips_unset_fields(self):
        ctx = ErrorContext(operation="insert_rows", attempt=2, method="Commit")
        assert ctx.to_dict() == {"operation": "insert_rows", "attempt": 2, "method": "Commit"}

    def test_to_dict_merges_metadata(self):
        ctx = ErrorContext(database="orders")
        ctx.metadata["table"] = "TestTable"
        assert ctx.to_dict() == {"database": "orders", "table": "TestTable"}


class TestCloudError:
    """Test the base error."""

    def test_defaults(self):
        error = CloudError("Something went wrong")
        assert error.message == "Something went wrong"
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.retry_after is None

    def test_explicit_overrides(self):
        error = CloudError("x", category=ErrorCategory.NETWORK, retryable=True, retry_after=5)
        assert error.category == ErrorCategory.NETWORK
        assert error.retryable is True
        assert error.retry_after == 5

    def test_cause_is_chained(self):
        original = ConnectionResetError("peer reset")
        error = CloudError("wrapped", cause=original)
        assert error.cause is original
        assert error.__cause__ is original

    def test_with_context_sets_known_fields_and_metadata(self):
        error = CloudError("x").with_context(method="ExecuteSql", attempt=3, shard=7)
        assert error.context.method == "ExecuteSql"
        assert error.context.attempt == 3
        assert error.context.metadata == {"shard": 7}

    def test_to_dict(self):
        error = NetworkError("reset", retry_after=2, cause=OSError("boom"))
        error.with_context(operation="commit")
        d = error.to_dict()
        assert d["error_type"] == "NetworkError"
        assert d["category"] == "NETWORK"
        assert d["retryable"] is True
        assert d["retry_after"] == 2
        assert d["context"] == {"operation": "commit"}
        assert d["cause"] == "boom"

    def test_repr(self):
        assert repr(ValidationError("bad key")) == "ValidationError('bad key', category=VALIDATION)"


class TestHierarchy:
    """Test default retry semantics of subclasses."""

    @pytest.mark.parametrize(
        "error",
        [
            TransientError("t"),
            NetworkError("n"),
            AttemptTimeoutError(1.5),
            RateLimitError(),
            ServiceUnavailableError("session pool drained"),
            TransactionAbortedError("aborted"),
        ],
    )
    def test_transient_family_is_retryable(self, error):
        assert error.retryable is True
        assert isinstance(error, TransientError)

    @pytest.mark.parametrize(
        "error",
        [
            ConfigError("c"),
            InvalidConfigError("max_attempts", 0),
            ValidationError("v"),
            TransactionError("scope misuse"),
        ],
    )
    def test_fatal_family_is_not_retryable(self, error):
        assert error.retryable is False

    def test_attempt_timeout_message(self):
        error = AttemptTimeoutError(2.0)
        assert error.timeout == 2.0
        assert "2.0s" in str(error)

    def test_rate_limit_carries_retry_after(self):
        assert RateLimitError(retry_after=12).retry_after == 12

    def test_transaction_aborted_category(self):
        assert TransactionAbortedError("x").category == ErrorCategory.TRANSACTION

    def test_invalid_config_message(self):
        error = InvalidConfigError("max_attempts", 0)
        assert error.key == "max_attempts"
        assert "max_attempts" in str(error)


class TestRetryOutcomes:
    def test_exhausted_wraps_last_error(self):
        last = NetworkError("still down")
        error = RetriesExhaustedError(3, last)
        assert error.attempts == 3
        assert error.last_error is last
        assert error.__cause__ is last
        assert error.category == ErrorCategory.RETRY
        assert error.retryable is False
        assert "3 attempt(s)" in str(error)

    def test_cancelled_includes_reason(self):
        error = RetryCancelledError(attempts=1, reason="shutdown")
        assert error.category == ErrorCategory.CANCELLED
        assert error.reason == "shutdown"
        assert str(error) == "Retry cancelled: shutdown"


class TestUtilities:
    def test_is_retryable_for_cloud_errors(self):
        assert is_retryable(NetworkError("x")) is True
        assert is_retryable(ValidationError("x")) is False
        assert is_retryable(CloudError("x", retryable=True)) is True

    def test_is_retryable_for_builtin_errors(self):
        assert is_retryable(ConnectionResetError()) is True
        assert is_retryable(TimeoutError()) is True
        assert is_retryable(ValueError()) is False
        assert is_retryable(KeyError("k")) is False

    def test_get_retry_after(self):
        assert get_retry_after(RateLimitError(retry_after=3)) == 3
        assert get_retry_after(NetworkError("x")) is None
        assert get_retry_after(ConnectionError()) is None

    def test_categorize_error(self):
        assert categorize_error(TransactionAbortedError("x")) == ErrorCategory.TRANSACTION
        assert categorize_error(ConnectionError()) == ErrorCategory.NETWORK
        assert categorize_error(ValueError()) == ErrorCategory.VALIDATION
        assert categorize_error(RuntimeError()) == ErrorCategory.UNKNOWN
