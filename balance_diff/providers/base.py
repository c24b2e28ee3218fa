from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import ClassVar, List, Optional, Sequence

import httpx

from ..core.amounts import format_amount
from ..core.errors import AddressError, RpcConnectionError, RpcError
from ..core.models import BalanceSnapshot, ChainFamily, TokenBalanceRecord
from ..core.networks import NetworkDescriptor, TokenDescriptor
from .rpc import JsonRpcClient

DEFAULT_TIMEOUT_S = 30.0


class ChainAdapter(ABC):
    """Base interface for one chain family.

    An adapter owns a single RPC client. ``connect()`` must succeed before any
    other I/O-bearing method; concurrent read-only calls on a connected adapter
    are safe.
    """

    chain_family: ClassVar[ChainFamily]
    address_hint: ClassVar[str] = ""

    def __init__(
        self,
        network: NetworkDescriptor,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.network = network
        self.timeout_s = timeout_s
        self.logger = logger or logging.getLogger(f"{__name__}.{self.chain_family.value}")
        self._transport = transport
        self._rpc: Optional[JsonRpcClient] = None

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def connect(self) -> None:
        """Open the RPC client and verify the endpoint answers."""
        if self._rpc is not None:
            return
        rpc = JsonRpcClient(self.network.rpc_url, timeout_s=self.timeout_s, transport=self._transport)
        self._rpc = rpc
        try:
            await self._handshake()
        except RpcConnectionError:
            await self._abort(rpc)
            raise
        except RpcError as exc:
            await self._abort(rpc)
            raise RpcConnectionError(
                f"Could not connect to {self.network.name}: {exc.message}",
                category=exc.category,
                rpc_code=exc.rpc_code,
                method=exc.method,
            ) from exc
        except BaseException:
            await self._abort(rpc)
            raise
        self.logger.debug("Connected to %s via %s", self.network.name, self.network.rpc_url)

    async def _abort(self, rpc: JsonRpcClient) -> None:
        self._rpc = None
        await rpc.aclose()

    async def close(self) -> None:
        if self._rpc is not None:
            await self._rpc.aclose()
            self._rpc = None

    async def __aenter__(self) -> "ChainAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def rpc(self) -> JsonRpcClient:
        if self._rpc is None:
            raise RuntimeError(f"{type(self).__name__} used before connect()")
        return self._rpc

    @property
    def connected(self) -> bool:
        return self._rpc is not None

    # ---------------------------
    # Chain-specific primitives
    # ---------------------------
    @abstractmethod
    async def _handshake(self) -> None:
        """Liveness check; raise RpcConnectionError on failure."""

    @abstractmethod
    async def current_height(self) -> int:
        """Current block number / slot / masterchain seqno."""

    @abstractmethod
    async def _fetch_native_balance(self, address: str, height: int) -> BalanceSnapshot:
        pass

    @abstractmethod
    async def _fetch_token_balance(self, address: str, token: TokenDescriptor) -> Optional[TokenBalanceRecord]:
        pass

    @abstractmethod
    def is_valid_address(self, address: str) -> bool:
        """Pure syntactic validation, no I/O."""

    # ---------------------------
    # Shared behaviour
    # ---------------------------
    def require_valid_address(self, address: str) -> None:
        if not self.is_valid_address(address):
            raise AddressError(address, self.chain_family.value, hint=self.address_hint or None)

    async def native_balance_at(self, address: str, height: int) -> BalanceSnapshot:
        self.require_valid_address(address)
        return await self._fetch_native_balance(address, height)

    async def token_balances(self, address: str, tokens: Sequence[TokenDescriptor]) -> List[TokenBalanceRecord]:
        """Strictly positive balances for ``tokens``; failed lookups are omitted."""
        self.require_valid_address(address)
        if not tokens:
            return []

        results = await asyncio.gather(
            *(self._fetch_token_balance(address, token) for token in tokens),
            return_exceptions=True,
        )

        balances: List[TokenBalanceRecord] = []
        for token, result in zip(tokens, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self.logger.debug("Token %s lookup failed: %s", token.symbol, result)
                continue
            if result is None or result.raw <= 0:
                continue
            balances.append(result)
        return balances

    def format_amount(self, raw: int, decimals: Optional[int] = None) -> str:
        return format_amount(raw, self.network.native_decimals if decimals is None else decimals)

    def explorer_url(self, address: str) -> str:
        return self.network.explorer_url.format(address=address)

    def _snapshot(self, raw: int, height: int, historical: bool = True) -> BalanceSnapshot:
        return BalanceSnapshot(
            raw=raw,
            height=height,
            decimals=self.network.native_decimals,
            historical=historical,
        )

    def _token_record(self, token: TokenDescriptor, raw: int, decimals: Optional[int] = None) -> TokenBalanceRecord:
        precision = token.decimals if decimals is None else decimals
        return TokenBalanceRecord(
            symbol=token.symbol,
            identifier=token.identifier,
            raw=raw,
            decimals=precision,
            formatted=format_amount(raw, precision),
        )


__all__ = ["ChainAdapter", "DEFAULT_TIMEOUT_S"]
