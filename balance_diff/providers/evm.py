"""EVM JSON-RPC adapter (Ethereum, L2s and other EVM-compatible chains)."""

from __future__ import annotations

from typing import Any, Optional

from ..core.errors import ErrorCategory, RpcConnectionError, RpcError
from ..core.models import BalanceSnapshot, ChainFamily, TokenBalanceRecord
from ..core.networks import TokenDescriptor
from ..services.address import is_valid_evm_address
from .base import ChainAdapter

# keccak("balanceOf(address)")[:4]
BALANCE_OF_SELECTOR = "0x70a08231"


def _parse_quantity(value: Any, method: str) -> int:
    if not isinstance(value, str) or not value.startswith("0x") or len(value) < 3:
        raise RpcError(f"{method} returned malformed quantity: {value!r}", category=ErrorCategory.PROVIDER, method=method)
    try:
        return int(value, 16)
    except ValueError as exc:
        raise RpcError(f"{method} returned malformed quantity: {value!r}", category=ErrorCategory.PROVIDER, method=method) from exc


def encode_balance_of(owner: str) -> str:
    return BALANCE_OF_SELECTOR + owner.lower().removeprefix("0x").rjust(64, "0")


class EVMAdapter(ChainAdapter):
    """Balances via ``eth_getBalance`` and ERC-20 ``balanceOf`` calls."""

    chain_family = ChainFamily.EVM
    address_hint = "Expected format: 0x followed by 40 hex characters"

    async def _handshake(self) -> None:
        result = await self.rpc.call("eth_chainId")
        try:
            chain_id = _parse_quantity(result, "eth_chainId")
        except RpcError as exc:
            raise RpcConnectionError(
                f"Malformed handshake from {self.network.rpc_url}: {exc.message}",
                category=ErrorCategory.PROVIDER,
                method="eth_chainId",
            ) from exc
        expected = self.network.chain_id
        if expected is not None and chain_id != expected:
            self.logger.warning(
                "RPC %s reports chain id %s, expected %s for %s",
                self.network.rpc_url, chain_id, expected, self.network.key,
            )

    async def current_height(self) -> int:
        result = await self.rpc.call("eth_blockNumber")
        return _parse_quantity(result, "eth_blockNumber")

    async def _fetch_native_balance(self, address: str, height: int) -> BalanceSnapshot:
        result = await self.rpc.call("eth_getBalance", [address, hex(height)])
        return self._snapshot(_parse_quantity(result, "eth_getBalance"), height)

    async def _fetch_token_balance(self, address: str, token: TokenDescriptor) -> Optional[TokenBalanceRecord]:
        call = {"to": token.identifier, "data": encode_balance_of(address)}
        result = await self.rpc.call("eth_call", [call, "latest"])
        # "0x" means no contract code at the token address
        raw = _parse_quantity(result, "eth_call")
        return self._token_record(token, raw)

    def is_valid_address(self, address: str) -> bool:
        return is_valid_evm_address(address)


__all__ = ["EVMAdapter", "encode_balance_of", "BALANCE_OF_SELECTOR"]
