"""Transport-injected RPC client base with per-method retry settings.

Service clients subclass :class:`RpcClient` and expose one coroutine per
remote method; each delegates to :meth:`RpcClient.call`, which resolves the
method's :class:`CallSettings` and runs the transport call through its retry
policy. The transport is injected, so tests hand in a
:class:`~cloudretry.rpc.fakes.ScriptedTransport` instead of a network stack.

Example::

    class InventoryClient(RpcClient):
        async def batch_get_history(self, request, **kwargs):
            return await self.call("BatchGetAssetsHistory", request, **kwargs)

    client = InventoryClient(
        transport,
        default_settings=CallSettings(retry=RetryPolicy(RpcStatusDetection())),
        method_settings={"ExportAssets": CallSettings(retry=None, timeout=600)},
    )
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from cloudretry.core.logging import get_logger
from cloudretry.core.protocols import Transport
from cloudretry.execution.cancellation import CancellationToken
from cloudretry.execution.policy import RetryPolicy

logger = get_logger(__name__)

_UNSET: Any = object()


@dataclass(frozen=True)
class CallSettings:
    """Retry policy and per-attempt timeout for a remote method.

    ``retry=None`` makes exactly one attempt.
    """

    retry: RetryPolicy | None = None
    timeout: float | None = None

    def with_overrides(self, *, retry: Any = _UNSET, timeout: Any = _UNSET) -> CallSettings:
        changes: dict[str, Any] = {}
        if retry is not _UNSET:
            changes["retry"] = retry
        if timeout is not _UNSET:
            changes["timeout"] = timeout
        return replace(self, **changes)


class RpcClient:
    """Base class for clients that call a service through a :class:`Transport`."""

    def __init__(
        self,
        transport: Transport,
        *,
        default_settings: CallSettings | None = None,
        method_settings: Mapping[str, CallSettings] | None = None,
    ) -> None:
        self.transport = transport
        self.default_settings = default_settings or CallSettings()
        self.method_settings = dict(method_settings or {})

    def settings_for(self, method: str) -> CallSettings:
        return self.method_settings.get(method, self.default_settings)

    async def call(
        self,
        method: str,
        request: Any,
        *,
        settings: CallSettings | None = None,
        cancel: CancellationToken | None = None,
    ) -> Any:
        """Invoke ``method`` with ``request``, retrying per the method's settings."""
        effective = settings or self.settings_for(method)

        async def attempt() -> Any:
            return await self.transport.unary_call(method, request, timeout=effective.timeout)

        logger.debug("rpc_call", method=method, retry=effective.retry is not None)
        if effective.retry is None:
            if cancel is not None:
                cancel.raise_if_cancelled()
            return await attempt()
        return await effective.retry.execute(attempt, cancel, operation=method)


__all__ = ["CallSettings", "RpcClient"]
