"""Scripted transport: a test double for :class:`~cloudretry.core.protocols.Transport`.

Replaces runtime-generated mock proxies. Each method gets a script of
outcomes; a response is returned, an exception instance is raised. Every
call is recorded.

Example::

    transport = ScriptedTransport({
        "ExecuteSql": [RpcError(StatusCode.UNAVAILABLE), {"rows": []}],
    })
    client = RpcClient(transport, default_settings=CallSettings(retry=policy))
    await client.call("ExecuteSql", {"sql": "SELECT 1"})
    assert transport.call_count("ExecuteSql") == 2
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from cloudretry.rpc.status import RpcError, StatusCode


@dataclass(frozen=True)
class RecordedCall:
    method: str
    request: Any
    timeout: float | None


class ScriptedTransport:
    """Replays scripted outcomes per method.

    Once a method's script runs out, ``default`` is used if given, else the
    call fails with ``UNIMPLEMENTED``.
    """

    def __init__(
        self,
        scripts: Mapping[str, Iterable[Any]] | None = None,
        *,
        default: Any = None,
    ) -> None:
        self._scripts: dict[str, deque[Any]] = {
            method: deque(outcomes) for method, outcomes in (scripts or {}).items()
        }
        self._default = default
        self.calls: list[RecordedCall] = []

    def script(self, method: str, *outcomes: Any) -> ScriptedTransport:
        """Append outcomes to ``method``'s script."""
        self._scripts.setdefault(method, deque()).extend(outcomes)
        return self

    def call_count(self, method: str | None = None) -> int:
        if method is None:
            return len(self.calls)
        return sum(1 for call in self.calls if call.method == method)

    async def unary_call(
        self,
        method: str,
        request: Any,
        *,
        timeout: float | None = None,
    ) -> Any:
        self.calls.append(RecordedCall(method, request, timeout))
        script = self._scripts.get(method)
        if script:
            outcome = script.popleft()
        elif self._default is not None:
            outcome = self._default
        else:
            raise RpcError(StatusCode.UNIMPLEMENTED, f"No scripted outcome for {method}", method=method)

        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


__all__ = ["RecordedCall", "ScriptedTransport"]
