"""TON adapter over the toncenter v2 JSON-RPC endpoint."""

from __future__ import annotations

from typing import Any, Optional

from ..core.errors import ErrorCategory, RpcConnectionError, RpcError
from ..core.models import BalanceSnapshot, ChainFamily, TokenBalanceRecord
from ..core.networks import TokenDescriptor
from ..services.address import is_valid_ton_address
from .base import ChainAdapter

TESTNET_EXPLORER = "https://testnet.tonscan.org"


def _seqno(result: Any) -> Optional[int]:
    last = result.get("last") if isinstance(result, dict) else None
    seqno = last.get("seqno") if isinstance(last, dict) else None
    if isinstance(seqno, bool) or not isinstance(seqno, int):
        return None
    return seqno


class TonAdapter(ChainAdapter):
    """toncenter only exposes latest account state, so every snapshot is non-historical."""

    chain_family = ChainFamily.TON
    address_hint = "Expected format: 48-char user-friendly (EQ.../UQ...) or raw <workchain>:<64 hex>"

    async def _handshake(self) -> None:
        result = await self.rpc.call("getMasterchainInfo")
        if _seqno(result) is None:
            raise RpcConnectionError(
                f"Malformed handshake from {self.network.rpc_url}: no masterchain seqno",
                category=ErrorCategory.PROVIDER,
                method="getMasterchainInfo",
            )

    async def current_height(self) -> int:
        seqno = _seqno(await self.rpc.call("getMasterchainInfo"))
        if seqno is None:
            raise RpcError(
                "getMasterchainInfo returned no seqno",
                category=ErrorCategory.PROVIDER,
                method="getMasterchainInfo",
            )
        return seqno

    async def _fetch_native_balance(self, address: str, height: int) -> BalanceSnapshot:
        result = await self.rpc.call("getAddressBalance", {"address": address})
        try:
            raw = int(result)
        except (TypeError, ValueError) as exc:
            raise RpcError(
                f"getAddressBalance returned malformed value: {result!r}",
                category=ErrorCategory.PROVIDER,
                method="getAddressBalance",
            ) from exc
        return self._snapshot(raw, height, historical=False)

    async def _fetch_token_balance(self, address: str, token: TokenDescriptor) -> Optional[TokenBalanceRecord]:
        # jettons are not tracked
        return None

    def is_valid_address(self, address: str) -> bool:
        return is_valid_ton_address(address)

    def explorer_url(self, address: str) -> str:
        url = super().explorer_url(address)
        if "testnet" in self.network.rpc_url and "testnet." not in url:
            url = url.replace("https://tonscan.org", TESTNET_EXPLORER, 1)
        return url


__all__ = ["TonAdapter"]
