"""Chain adapters and the factory that picks one per network."""

from __future__ import annotations

from typing import Dict, Optional, Type

import httpx

from ..core.models import ChainFamily
from ..core.networks import NetworkDescriptor
from .base import DEFAULT_TIMEOUT_S, ChainAdapter
from .evm import EVMAdapter
from .solana import SolanaAdapter
from .ton import TonAdapter

ADAPTERS: Dict[ChainFamily, Type[ChainAdapter]] = {
    ChainFamily.EVM: EVMAdapter,
    ChainFamily.SOLANA: SolanaAdapter,
    ChainFamily.TON: TonAdapter,
}


def create_adapter(
    network: NetworkDescriptor,
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ChainAdapter:
    """Build an unconnected adapter for ``network``'s chain family."""
    adapter_cls = ADAPTERS.get(network.chain_family)
    if adapter_cls is None:
        raise NotImplementedError(f"No adapter for chain family {network.chain_family!r}")
    return adapter_cls(network, timeout_s=timeout_s, transport=transport)


__all__ = [
    "ADAPTERS",
    "ChainAdapter",
    "EVMAdapter",
    "SolanaAdapter",
    "TonAdapter",
    "create_adapter",
]
