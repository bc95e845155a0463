#!/usr/bin/env python3
"""RPC Client: per-method retry settings over an injected transport.

Run: python examples/03_rpc_client.py
"""
import asyncio

from cloudretry.execution import ConstantBackoff, RetryPolicy, RpcStatusDetection
from cloudretry.rpc import RpcError, StatusCode
from cloudretry.rpc.client import CallSettings, RpcClient
from cloudretry.rpc.fakes import ScriptedTransport


class AssetClient(RpcClient):
    async def batch_get_assets_history(self, request, **kwargs):
        return await self.call("BatchGetAssetsHistory", request, **kwargs)

    async def export_assets(self, request, **kwargs):
        return await self.call("ExportAssets", request, **kwargs)


async def main():
    transport = ScriptedTransport({
        "BatchGetAssetsHistory": [
            RpcError(StatusCode.UNAVAILABLE, "try later"),
            {"assets": [{"name": "//compute.googleapis.com/instances/1"}]},
        ],
        "ExportAssets": [RpcError(StatusCode.UNAVAILABLE, "try later")],
    })
    client = AssetClient(
        transport,
        default_settings=CallSettings(
            retry=RetryPolicy(RpcStatusDetection(), ConstantBackoff(max_attempts=3, delay=0.05)),
            timeout=60.0,
        ),
        method_settings={"ExportAssets": CallSettings(retry=None, timeout=600.0)},
    )

    response = await client.batch_get_assets_history({"parent": "projects/demo"})
    print(f"BatchGetAssetsHistory -> {response} ({transport.call_count('BatchGetAssetsHistory')} calls)")

    try:
        await client.export_assets({"parent": "projects/demo"})
    except RpcError as e:
        print(f"ExportAssets -> {e} ({transport.call_count('ExportAssets')} call, no retry)")


if __name__ == "__main__":
    asyncio.run(main())
