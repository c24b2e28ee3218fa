from typing import Awaitable, Callable, Dict, List, Optional, Union

import pytest

from balance_diff.core.models import BalanceSnapshot, ChainFamily, TokenBalanceRecord
from balance_diff.core.networks import NETWORKS, NetworkDescriptor, TokenDescriptor
from balance_diff.providers.base import ChainAdapter
from balance_diff.services.address import is_valid_evm_address


class FakeAdapter(ChainAdapter):
    """In-memory EVM-style adapter driven by callables instead of RPC."""

    chain_family = ChainFamily.EVM
    address_hint = "Expected format: 0x followed by 40 hex characters"

    def __init__(
        self,
        network: NetworkDescriptor,
        *,
        height: Union[int, Callable[[], int]] = 1000,
        balance: Optional[Callable[[str, int], int]] = None,
        token_raw: Optional[Dict[str, Union[int, Exception]]] = None,
        gate: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        super().__init__(network)
        self._height = height
        self._balance = balance or (lambda address, height: 0)
        self.token_raw = token_raw or {}
        self.gate = gate
        self.balance_calls: List[tuple] = []
        self.is_open = False

    async def connect(self) -> None:
        self.is_open = True

    async def close(self) -> None:
        self.is_open = False

    async def _handshake(self) -> None:
        return None

    async def current_height(self) -> int:
        return self._height() if callable(self._height) else self._height

    async def _fetch_native_balance(self, address: str, height: int) -> BalanceSnapshot:
        self.balance_calls.append((address, height))
        if self.gate is not None:
            await self.gate()
        return self._snapshot(self._balance(address, height), height)

    async def _fetch_token_balance(self, address: str, token: TokenDescriptor) -> Optional[TokenBalanceRecord]:
        if self.gate is not None:
            await self.gate()
        value = self.token_raw.get(token.symbol, 0)
        if isinstance(value, Exception):
            raise value
        return self._token_record(token, value)

    def is_valid_address(self, address: str) -> bool:
        return is_valid_evm_address(address)


@pytest.fixture
def mainnet() -> NetworkDescriptor:
    return NETWORKS["mainnet"]


@pytest.fixture
def make_adapter(mainnet):
    def _make(**kwargs) -> FakeAdapter:
        return FakeAdapter(kwargs.pop("network", mainnet), **kwargs)

    return _make
