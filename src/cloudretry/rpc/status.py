"""Canonical RPC status codes and the error raised for a failed call."""

from __future__ import annotations

from enum import IntEnum
from typing import Any

from cloudretry.core.errors import CloudError, ErrorCategory


class StatusCode(IntEnum):
    """Canonical status codes shared by RPC-based cloud APIs."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


# Codes a database session can safely re-run the whole unit of work for.
TRANSIENT_STATUS_CODES: frozenset[StatusCode] = frozenset({
    StatusCode.UNAVAILABLE,
    StatusCode.ABORTED,
})

_CATEGORY_BY_CODE: dict[StatusCode, ErrorCategory] = {
    StatusCode.UNAVAILABLE: ErrorCategory.NETWORK,
    StatusCode.DEADLINE_EXCEEDED: ErrorCategory.NETWORK,
    StatusCode.ABORTED: ErrorCategory.TRANSACTION,
    StatusCode.INVALID_ARGUMENT: ErrorCategory.VALIDATION,
    StatusCode.OUT_OF_RANGE: ErrorCategory.VALIDATION,
    StatusCode.FAILED_PRECONDITION: ErrorCategory.VALIDATION,
    StatusCode.PERMISSION_DENIED: ErrorCategory.AUTH,
    StatusCode.UNAUTHENTICATED: ErrorCategory.AUTH,
    StatusCode.CANCELLED: ErrorCategory.CANCELLED,
}


class RpcError(CloudError):
    """
    A remote call completed with a non-OK status.

    ``retryable`` defaults to membership in :data:`TRANSIENT_STATUS_CODES`
    and the category is derived from the code unless given explicitly.

    Example:
        >>> err = RpcError(StatusCode.ABORTED, "Transaction was aborted.")
        >>> err.retryable
        True
        >>> err.category
        <ErrorCategory.TRANSACTION: 'TRANSACTION'>
    """

    default_category = ErrorCategory.RPC

    def __init__(
        self,
        code: StatusCode | int,
        message: str = "",
        *,
        method: str | None = None,
        details: Any = None,
        **kwargs: Any,
    ):
        self.code = StatusCode(code)
        self.method = method
        self.details = details
        kwargs.setdefault("category", _CATEGORY_BY_CODE.get(self.code, ErrorCategory.RPC))
        kwargs.setdefault("retryable", self.code in TRANSIENT_STATUS_CODES)
        super().__init__(
            f"Status({self.code.name}): {message}" if message else f"Status({self.code.name})",
            **kwargs,
        )
        if method is not None:
            self.context.method = method

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["code"] = self.code.name
        return result


__all__ = [
    "StatusCode",
    "TRANSIENT_STATUS_CODES",
    "RpcError",
]
