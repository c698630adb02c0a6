from __future__ import annotations

from typing import Any, Optional


class RpcError(RuntimeError):
    """Base error for JSON-RPC calls. Carries the node's error code when there is one."""

    def __init__(self, message: str, *, code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class RpcTransportError(RpcError):
    pass


class RpcTimeoutError(RpcTransportError):
    pass


class RpcRateLimitError(RpcTransportError):
    pass


class RpcAuthError(RpcError):
    pass
