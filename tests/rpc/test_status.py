"""Tests for RPC status codes and RpcError."""

import pytest

from cloudretry.core.errors import CloudError, ErrorCategory
from cloudretry.rpc.status import TRANSIENT_STATUS_CODES, RpcError, StatusCode


class TestStatusCode:
    def test_canonical_values(self):
        assert StatusCode.OK == 0
        assert StatusCode.ABORTED == 10
        assert StatusCode.UNAVAILABLE == 14
        assert StatusCode.UNAUTHENTICATED == 16

    def test_transient_codes(self):
        assert TRANSIENT_STATUS_CODES == {StatusCode.UNAVAILABLE, StatusCode.ABORTED}


class TestRpcError:
    def test_message_includes_status(self):
        error = RpcError(StatusCode.ABORTED, "Transaction was aborted.")
        assert str(error) == "Status(ABORTED): Transaction was aborted."
        assert isinstance(error, CloudError)

    def test_message_without_detail(self):
        assert str(RpcError(StatusCode.NOT_FOUND)) == "Status(NOT_FOUND)"

    def test_int_code_is_converted(self):
        assert RpcError(14).code is StatusCode.UNAVAILABLE

    @pytest.mark.parametrize(
        ("code", "retryable", "category"),
        [
            (StatusCode.UNAVAILABLE, True, ErrorCategory.NETWORK),
            (StatusCode.ABORTED, True, ErrorCategory.TRANSACTION),
            (StatusCode.DEADLINE_EXCEEDED, False, ErrorCategory.NETWORK),
            (StatusCode.INVALID_ARGUMENT, False, ErrorCategory.VALIDATION),
            (StatusCode.PERMISSION_DENIED, False, ErrorCategory.AUTH),
            (StatusCode.INTERNAL, False, ErrorCategory.RPC),
        ],
    )
    def test_defaults_derived_from_code(self, code, retryable, category):
        error = RpcError(code)
        assert error.retryable is retryable
        assert error.category == category

    def test_explicit_overrides(self):
        error = RpcError(StatusCode.INTERNAL, retryable=True, retry_after=3)
        assert error.retryable is True
        assert error.retry_after == 3

    def test_method_recorded_in_context(self):
        error = RpcError(StatusCode.UNAVAILABLE, method="BatchGetAssetsHistory", details={"region": "us"})
        assert error.method == "BatchGetAssetsHistory"
        assert error.details == {"region": "us"}
        assert error.context.method == "BatchGetAssetsHistory"

    def test_to_dict_includes_code(self):
        d = RpcError(StatusCode.ABORTED, "x").to_dict()
        assert d["code"] == "ABORTED"
        assert d["error_type"] == "RpcError"
        assert d["retryable"] is True
