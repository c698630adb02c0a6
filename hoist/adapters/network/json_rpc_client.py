from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, Optional, Protocol, Sequence

import httpx

from .rpc_errors import RpcAuthError, RpcError, RpcRateLimitError, RpcTimeoutError, RpcTransportError

logger = logging.getLogger("hoist.rpc")


class RequestProvider(Protocol):
    """EIP-1193 style provider: the only network surface the environment needs."""

    async def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        ...


class JsonRpcProvider:
    """JSON-RPC over HTTP with retry for transient transport failures."""

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 30.0,
        max_retries: int = 2,
        backoff_base_seconds: float = 0.5,
        backoff_max_seconds: float = 4.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_max_seconds = backoff_max_seconds
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self._transport = transport
        self._ids = itertools.count(1)

    async def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": list(params or [])}
        attempts = 0
        while True:
            try:
                body = await self._post(payload)
                break
            except (RpcTimeoutError, RpcRateLimitError, RpcTransportError):
                if attempts >= self.max_retries:
                    raise
                delay = min(self.backoff_max_seconds, self.backoff_base_seconds * (2**attempts))
                await asyncio.sleep(delay)
                attempts += 1

        if not isinstance(body, dict):
            raise RpcError(f"Malformed JSON-RPC response for {method}")
        error = body.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise RpcError(f"{method} failed: {message}", code=code, data=error.get("data") if isinstance(error, dict) else None)
        return body.get("result")

    async def _post(self, payload: Dict[str, Any]) -> Any:
        method = payload["method"]
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(self.url, json=payload, headers=self.headers)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as exc:
            self.log_failure("timeout", method=method, error=str(exc))
            raise RpcTimeoutError(str(exc)) from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            self.log_failure("http_status", method=method, status_code=status_code, error=str(exc))
            raise self.classify_http_error(status_code=status_code, exc=exc) from exc
        except httpx.RequestError as exc:
            self.log_failure("network", method=method, error=str(exc))
            raise RpcTransportError(str(exc)) from exc
        except ValueError as exc:
            raise RpcError(f"Non-JSON response for {method}: {exc}") from exc

    @staticmethod
    def classify_http_error(*, status_code: Optional[int], exc: Exception) -> RpcError:
        if status_code == 429:
            return RpcRateLimitError(str(exc))
        if status_code in {401, 403}:
            return RpcAuthError(str(exc))
        if status_code is not None and status_code >= 500:
            return RpcTransportError(str(exc))
        return RpcError(str(exc))

    def log_failure(self, kind: str, **fields: Any) -> None:
        logger.warning("rpc_request_failed kind=%s url=%s %s", kind, self.url, fields)
