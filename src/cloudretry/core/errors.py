"""
Structured error types for cloudretry.

Provides a typed hierarchy of errors carrying the metadata the retry
executor needs to decide whether a failed remote call is worth repeating:
a category, a retryable flag, an optional server retry hint and a cause
chain.

Manifesto:
    - **Explicit Retry Semantics:** Each error knows if it is transient
    - **Typed Error Hierarchy:** Network, database, transaction and retry
      outcomes are distinct types
    - **Rich Context:** Errors carry the attempt, method and database they
      came from
    - **Error Chaining:** The original exception is always preserved

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                         CloudError                              │
        │        (category, retryable, retry_after, context, cause)       │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                 │
        │  TransientError           ConfigError        DatabaseError      │
        │  (retryable=True)         (CONFIG)           (DATABASE)         │
        │       │                        │                  │             │
        │  NetworkError             InvalidConfig      TransactionError   │
        │  AttemptTimeoutError                                            │
        │  RateLimitError           ValidationError    RetryError         │
        │  ServiceUnavailableError  (VALIDATION)       (RETRY)            │
        │  TransactionAbortedError                          │             │
        │                                              RetriesExhausted   │
        │                                              RetryCancelled     │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = TransientError("Connection reset", retry_after=2)
    >>> error.retryable
    True
    >>> error.with_context(method="Commit", attempt=3).context.attempt
    3

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context,
    cloudretry

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Categories are grouped by their typical retry behavior:
    - **Infrastructure (usually transient):** NETWORK, DATABASE, RPC
    - **Transaction outcomes:** TRANSACTION
    - **Never retryable:** CONFIG, AUTH, VALIDATION
    - **Retry outcomes:** RETRY, CANCELLED
    - **Internal errors:** INTERNAL, UNKNOWN
    """

    # Infrastructure errors (usually transient)
    NETWORK = "NETWORK"           # Connection, timeout, DNS
    DATABASE = "DATABASE"         # Session, query, connection pool
    RPC = "RPC"                   # Remote call returned a status code

    TRANSACTION = "TRANSACTION"   # Commit, rollback, scope misuse

    # Never retryable
    CONFIG = "CONFIG"
    AUTH = "AUTH"
    VALIDATION = "VALIDATION"

    # Retry outcomes
    RETRY = "RETRY"
    CANCELLED = "CANCELLED"

    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields cover what a failed remote call usually needs for logging
    (operation, attempt, RPC method, database, transaction); anything else
    goes into ``metadata``. ``to_dict()`` serializes only the fields that
    are set.

    Attributes:
        operation: Name of the unit of work
        attempt: 1-based attempt number that produced the error
        max_attempts: Attempt budget of the policy in force
        method: Remote method name (e.g. ``"ExecuteSql"``)
        database: Database the call was addressed to
        transaction_id: Transaction the call ran in
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    attempt: int | None = None
    max_attempts: int | None = None

    method: str | None = None
    database: str | None = None
    transaction_id: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "metadata" and getattr(self, f.name) is not None
        }
        data.update(self.metadata)
        return data


class CloudError(Exception):
    """
    Base exception for all cloudretry errors.

    Every instance carries:
    - **category:** ErrorCategory for classification and routing
    - **retryable:** Whether the operation can be retried
    - **retry_after:** Optional seconds the server asked us to wait
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception, also set as ``__cause__``

    Subclasses set ``default_category`` and ``default_retryable``.

    Examples:
        >>> error = CloudError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
        >>> CloudError("x", retryable=True).retryable
        True
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: float | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CloudError:
        """Record where the error happened; returns ``self`` for chaining.

        Usage:
            raise NetworkError("Reset").with_context(method="Commit", attempt=2)
        """
        known = {f.name for f in fields(self.context)} - {"metadata"}
        for key, value in kwargs.items():
            if key in known:
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Flat, JSON-friendly description for logs and ``Err.to_dict``."""
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        optional = {
            "retry_after": self.retry_after,
            "context": self.context.to_dict() or None,
            "cause": str(self.cause) if self.cause is not None else None,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Retryable)
# =============================================================================


class TransientError(CloudError):
    """
    Temporary error that may succeed on retry.

    Use when the same call, made again after a delay, has a reasonable
    chance of succeeding: connection resets, contention, throttling,
    a server that is briefly unavailable.
    """

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class NetworkError(TransientError):
    """Network connectivity error."""


class AttemptTimeoutError(TransientError):
    """A single attempt ran longer than the policy's attempt timeout."""

    def __init__(self, timeout: float, message: str | None = None, **kwargs: Any):
        self.timeout = timeout
        super().__init__(message or f"Attempt timed out after {timeout}s", **kwargs)


class RateLimitError(TransientError):
    """The service throttled the caller."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: float = 60, **kwargs: Any):
        super().__init__(message, retry_after=retry_after, **kwargs)


class ServiceUnavailableError(TransientError):
    """The remote service is temporarily unable to take the call."""


class TransactionAbortedError(TransientError):
    """The server aborted the transaction (lock contention); re-run it whole."""

    default_category = ErrorCategory.TRANSACTION


# =============================================================================
# NON-RETRYABLE ERRORS
# =============================================================================


class ConfigError(CloudError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid value for {key}: {value!r}")


class ValidationError(CloudError):
    """Request or data failed validation. Never retryable."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


class DatabaseError(CloudError):
    """Database operation failed."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class TransactionError(DatabaseError):
    """Transaction could not be committed, or its scope was misused."""

    default_category = ErrorCategory.TRANSACTION


# =============================================================================
# RETRY OUTCOMES
# =============================================================================


class RetryError(CloudError):
    """Base for errors raised by the retry executor itself."""

    default_category = ErrorCategory.RETRY
    default_retryable = False


class RetriesExhaustedError(RetryError):
    """
    Every attempt failed with a transient error.

    Only raised when the policy asks for exhaustion to be wrapped; otherwise
    the last transient error propagates as-is. ``last_error`` and
    ``__cause__`` both point at it.
    """

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Gave up after {attempts} attempt(s): {last_error}",
            cause=last_error,
        )


class RetryCancelledError(RetryError):
    """The caller's cancellation token fired; no further attempts are made."""

    default_category = ErrorCategory.CANCELLED

    def __init__(
        self,
        message: str = "Retry cancelled",
        *,
        attempts: int = 0,
        reason: str | None = None,
        cause: BaseException | None = None,
    ):
        self.attempts = attempts
        self.reason = reason
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, cause=cause)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, CloudError):
        return error.retryable
    # Builtin errors that usually mean the network hiccuped
    retryable_types = (
        ConnectionError,
        TimeoutError,
    )
    return isinstance(error, retryable_types)


def get_retry_after(error: BaseException) -> float | None:
    """Get retry delay from error, if specified."""
    if isinstance(error, CloudError):
        return error.retry_after
    return None


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, CloudError):
        return error.category
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorCategory.NETWORK
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CloudError",
    # Transient
    "TransientError",
    "NetworkError",
    "AttemptTimeoutError",
    "RateLimitError",
    "ServiceUnavailableError",
    "TransactionAbortedError",
    # Non-retryable
    "ConfigError",
    "InvalidConfigError",
    "ValidationError",
    "DatabaseError",
    "TransactionError",
    # Retry outcomes
    "RetryError",
    "RetriesExhaustedError",
    "RetryCancelledError",
    # Utilities
    "is_retryable",
    "get_retry_after",
    "categorize_error",
]
