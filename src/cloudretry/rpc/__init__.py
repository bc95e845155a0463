"""RPC layer: status codes, RpcError and the transport-injected client base.

Only the status module is imported eagerly; import the client from
:mod:`cloudretry.rpc.client` and test doubles from :mod:`cloudretry.rpc.fakes`.
"""

from cloudretry.rpc.status import TRANSIENT_STATUS_CODES, RpcError, StatusCode

__all__ = [
    "StatusCode",
    "TRANSIENT_STATUS_CODES",
    "RpcError",
]
