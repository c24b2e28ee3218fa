"""Solana JSON-RPC adapter (mainnet, devnet and Helium SPL tokens)."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..core.errors import ErrorCategory, RpcConnectionError, RpcError
from ..core.models import BalanceSnapshot, ChainFamily, TokenBalanceRecord
from ..core.networks import TokenDescriptor
from ..services.address import is_valid_solana_address
from .base import ChainAdapter

COMMITMENT = "confirmed"


def _as_int(value: Any, method: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise RpcError(f"{method} returned malformed value: {value!r}", category=ErrorCategory.PROVIDER, method=method)
    try:
        return int(value)
    except ValueError as exc:
        raise RpcError(f"{method} returned malformed value: {value!r}", category=ErrorCategory.PROVIDER, method=method) from exc


class SolanaAdapter(ChainAdapter):
    """Native SOL via ``getBalance`` and SPL tokens via ``getTokenAccountsByOwner``.

    Solana RPC nodes do not serve balances at arbitrary past slots. The
    requested slot is passed as ``minContextSlot``; nodes that reject it are
    answered with the latest balance. A snapshot is historical only when the
    node's context slot is the requested one.
    """

    chain_family = ChainFamily.SOLANA
    address_hint = "Expected format: base58 public key (32-44 characters)"

    async def _handshake(self) -> None:
        result = await self.rpc.call("getSlot", [{"commitment": COMMITMENT}])
        if isinstance(result, bool) or not isinstance(result, int):
            raise RpcConnectionError(
                f"Malformed handshake from {self.network.rpc_url}: getSlot returned {result!r}",
                category=ErrorCategory.PROVIDER,
                method="getSlot",
            )

    async def current_height(self) -> int:
        result = await self.rpc.call("getSlot", [{"commitment": COMMITMENT}])
        return _as_int(result, "getSlot")

    async def _fetch_native_balance(self, address: str, height: int) -> BalanceSnapshot:
        try:
            result = await self.rpc.call(
                "getBalance",
                [address, {"commitment": COMMITMENT, "minContextSlot": height}],
            )
        except RpcError as exc:
            if not exc.node_rejected:
                raise
            self.logger.debug("getBalance at slot %s rejected (%s); using latest balance", height, exc.message)
            result = await self.rpc.call("getBalance", [address, {"commitment": COMMITMENT}])
            raw, slot = self._parse_balance(result)
            return self._snapshot(raw, slot if slot is not None else height, historical=False)

        # minContextSlot is a lower bound; the node answers at its own context slot
        raw, slot = self._parse_balance(result)
        if slot is None:
            return self._snapshot(raw, height, historical=False)
        return self._snapshot(raw, slot, historical=slot == height)

    @staticmethod
    def _parse_balance(result: Any) -> tuple[int, Optional[int]]:
        if isinstance(result, dict):
            context = result.get("context") or {}
            slot = context.get("slot") if isinstance(context, dict) else None
            raw = _as_int(result.get("value"), "getBalance")
            return raw, slot if isinstance(slot, int) else None
        return _as_int(result, "getBalance"), None

    async def _fetch_token_balance(self, address: str, token: TokenDescriptor) -> Optional[TokenBalanceRecord]:
        result = await self.rpc.call(
            "getTokenAccountsByOwner",
            [address, {"mint": token.identifier}, {"encoding": "jsonParsed", "commitment": COMMITMENT}],
        )
        accounts = result.get("value") if isinstance(result, dict) else None
        if not accounts:
            return None

        total = 0
        decimals = token.decimals
        for account in accounts:
            amount = self._token_amount(account)
            if amount is None:
                continue
            total += _as_int(amount.get("amount", "0"), "getTokenAccountsByOwner")
            if isinstance(amount.get("decimals"), int):
                decimals = amount["decimals"]
        return self._token_record(token, total, decimals)

    @staticmethod
    def _token_amount(account: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            return account["account"]["data"]["parsed"]["info"]["tokenAmount"]
        except (KeyError, TypeError):
            return None

    def is_valid_address(self, address: str) -> bool:
        return is_valid_solana_address(address)

    def explorer_url(self, address: str) -> str:
        url = super().explorer_url(address)
        if "devnet" in self.network.rpc_url and "cluster=" not in url:
            url += "?cluster=devnet"
        return url


__all__ = ["SolanaAdapter"]
