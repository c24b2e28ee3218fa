"""JSON-RPC transport shared by every chain adapter.

One ``JsonRpcClient`` wraps exactly one ``httpx.AsyncClient``. All ``httpx``
failures are translated into :class:`RpcError` here so callers never see raw
transport exceptions.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Optional

import httpx

from ..core.errors import ErrorCategory, RpcError

logger = logging.getLogger(__name__)


class JsonRpcClient:
    """Minimal async JSON-RPC 2.0 client."""

    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout_s = timeout_s
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(
            timeout=timeout_s,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def call(self, method: str, params: Any = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": [] if params is None else params,
            "id": next(self._ids),
        }

        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.TimeoutException as exc:
            raise RpcError(
                f"{method} timed out after {self.timeout_s:g}s",
                category=ErrorCategory.TIMEOUT,
                method=method,
            ) from exc
        except httpx.TransportError as exc:
            raise RpcError(
                f"{method} failed: {exc}",
                category=ErrorCategory.NETWORK,
                method=method,
            ) from exc

        if response.status_code == 429:
            raise RpcError(
                f"{method} rate limited by RPC endpoint (HTTP 429)",
                category=ErrorCategory.RATE_LIMIT,
                method=method,
            )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RpcError(
                f"{method} failed with HTTP {response.status_code}",
                category=ErrorCategory.PROVIDER,
                method=method,
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise RpcError(
                f"{method} returned a non-JSON response",
                category=ErrorCategory.PROVIDER,
                method=method,
            ) from exc

        if not isinstance(data, dict):
            raise RpcError(f"Unexpected response to {method}", category=ErrorCategory.PROVIDER, method=method)

        error = data.get("error")
        # toncenter wraps results as {"ok": false, "error": "...", "code": ...}
        if error is not None or data.get("ok") is False:
            raise self._node_error(method, error, data)

        if "result" not in data:
            raise RpcError(f"{method} response has no result", category=ErrorCategory.PROVIDER, method=method)
        return data["result"]

    @staticmethod
    def _node_error(method: str, error: Any, data: dict) -> RpcError:
        if isinstance(error, dict):
            message = str(error.get("message") or error)
            code = error.get("code")
        else:
            message = str(error or "request rejected")
            code = data.get("code")
        category = ErrorCategory.PROVIDER
        lowered = message.lower()
        if code == 429 or "rate limit" in lowered or "too many requests" in lowered:
            category = ErrorCategory.RATE_LIMIT
        logger.debug("RPC %s rejected: %s (code=%s)", method, message, code)
        return RpcError(
            f"{method} error: {message}",
            category=category,
            rpc_code=code if isinstance(code, int) else None,
            method=method,
        )

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["JsonRpcClient"]
