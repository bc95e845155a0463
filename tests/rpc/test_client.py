"""Tests for RpcClient with a scripted transport."""

import pytest

from cloudretry.core.errors import RetryCancelledError
from cloudretry.execution.backoff import ConstantBackoff
from cloudretry.execution.cancellation import CancellationToken
from cloudretry.execution.detection import RpcStatusDetection
from cloudretry.execution.policy import RetryPolicy
from cloudretry.rpc.client import CallSettings, RpcClient
from cloudretry.rpc.fakes import ScriptedTransport
from cloudretry.rpc.status import RpcError, StatusCode


class InventoryClient(RpcClient):
    async def batch_get_assets_history(self, request, **kwargs):
        return await self.call("BatchGetAssetsHistory", request, **kwargs)

    async def export_assets(self, request, **kwargs):
        return await self.call("ExportAssets", request, **kwargs)


@pytest.fixture
def rpc_policy():
    return RetryPolicy(RpcStatusDetection(), ConstantBackoff(max_attempts=3, delay=0.0))


class TestCallSettings:
    def test_with_overrides(self, rpc_policy):
        settings = CallSettings(retry=rpc_policy, timeout=10.0)
        assert settings.with_overrides(timeout=5.0) == CallSettings(retry=rpc_policy, timeout=5.0)
        assert settings.with_overrides(retry=None).retry is None
        assert settings.with_overrides() == settings


class TestScriptedTransport:
    @pytest.mark.asyncio
    async def test_replays_script_and_records_calls(self):
        transport = ScriptedTransport().script("Get", {"id": 1})
        assert await transport.unary_call("Get", {"name": "a"}, timeout=3.0) == {"id": 1}
        assert transport.calls[0].request == {"name": "a"}
        assert transport.calls[0].timeout == 3.0

    @pytest.mark.asyncio
    async def test_unscripted_method_is_unimplemented(self):
        with pytest.raises(RpcError) as exc_info:
            await ScriptedTransport().unary_call("Missing", {})
        assert exc_info.value.code is StatusCode.UNIMPLEMENTED

    @pytest.mark.asyncio
    async def test_default_response(self):
        transport = ScriptedTransport(default="pong")
        assert await transport.unary_call("Ping", None) == "pong"
        assert await transport.unary_call("Ping", None) == "pong"
        assert transport.call_count("Ping") == 2


class TestRpcClient:
    @pytest.mark.asyncio
    async def test_request_and_response_pass_through(self, rpc_policy):
        request = {"parent": "projects/p", "asset_names": ["a"]}
        response = {"assets": [{"name": "a"}]}
        transport = ScriptedTransport({"BatchGetAssetsHistory": [response]})
        client = InventoryClient(transport, default_settings=CallSettings(retry=rpc_policy, timeout=30.0))

        assert await client.batch_get_assets_history(request) is response
        assert transport.call_count() == 1
        assert transport.calls[0].request is request
        assert transport.calls[0].timeout == 30.0

    @pytest.mark.asyncio
    async def test_transient_status_is_retried(self, rpc_policy):
        transport = ScriptedTransport({
            "BatchGetAssetsHistory": [
                RpcError(StatusCode.UNAVAILABLE, "try later"),
                RpcError(StatusCode.INTERNAL, "Received RST_STREAM with error code 2"),
                {"assets": []},
            ],
        })
        client = InventoryClient(transport, default_settings=CallSettings(retry=rpc_policy))

        assert await client.batch_get_assets_history({}) == {"assets": []}
        assert transport.call_count("BatchGetAssetsHistory") == 3

    @pytest.mark.asyncio
    async def test_fatal_status_is_not_retried(self, rpc_policy):
        transport = ScriptedTransport({
            "BatchGetAssetsHistory": [RpcError(StatusCode.INVALID_ARGUMENT, "bad parent"), {}],
        })
        client = InventoryClient(transport, default_settings=CallSettings(retry=rpc_policy))

        with pytest.raises(RpcError) as exc_info:
            await client.batch_get_assets_history({})
        assert exc_info.value.code is StatusCode.INVALID_ARGUMENT
        assert transport.call_count() == 1

    @pytest.mark.asyncio
    async def test_method_settings_disable_retry(self, rpc_policy):
        transport = ScriptedTransport({"ExportAssets": [RpcError(StatusCode.UNAVAILABLE), {}]})
        client = InventoryClient(
            transport,
            default_settings=CallSettings(retry=rpc_policy),
            method_settings={"ExportAssets": CallSettings(retry=None, timeout=600.0)},
        )

        with pytest.raises(RpcError):
            await client.export_assets({})
        assert transport.call_count("ExportAssets") == 1
        assert transport.calls[0].timeout == 600.0

    @pytest.mark.asyncio
    async def test_per_call_settings_override(self, rpc_policy):
        transport = ScriptedTransport({"ExportAssets": [RpcError(StatusCode.ABORTED), "done"]})
        client = InventoryClient(transport, method_settings={"ExportAssets": CallSettings(retry=None)})

        assert await client.export_assets({}, settings=CallSettings(retry=rpc_policy)) == "done"
        assert transport.call_count() == 2

    @pytest.mark.asyncio
    async def test_cancelled_token_skips_call(self, rpc_policy):
        token = CancellationToken()
        token.cancel("shutdown")
        transport = ScriptedTransport(default={})

        for settings in (CallSettings(retry=rpc_policy), CallSettings(retry=None)):
            client = InventoryClient(transport, default_settings=settings)
            with pytest.raises(RetryCancelledError):
                await client.batch_get_assets_history({}, cancel=token)

        assert transport.call_count() == 0

    def test_settings_for_falls_back_to_default(self, rpc_policy):
        default = CallSettings(retry=rpc_policy)
        client = InventoryClient(ScriptedTransport(), default_settings=default)
        assert client.settings_for("Anything") is default

    def test_scripted_transport_satisfies_protocol(self):
        from cloudretry.core.protocols import Transport

        assert isinstance(ScriptedTransport(), Transport)
