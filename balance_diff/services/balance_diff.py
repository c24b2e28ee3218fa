"""
Balance-Diff Engine.

Computes the change in native balance for an address over a lookback window
and gathers the token balances that go with it.

Features:
- Concurrent current/previous snapshot fetch
- Height clamping at genesis
- Per-address error isolation for batch runs (input order preserved)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..core.errors import error_code_for, exit_code_for, is_rpc_error
from ..core.models import BalanceDiffRecord, ExitCode, TokenBalanceRecord
from ..core.networks import NetworkDescriptor
from ..providers.base import ChainAdapter

logger = logging.getLogger(__name__)


async def compute_diff(adapter: ChainAdapter, address: str, lookback: int) -> BalanceDiffRecord:
    """Diff of the native balance between ``current`` and ``current - lookback``."""
    if lookback <= 0:
        raise ValueError("lookback must be a positive integer")

    current_height = await adapter.current_height()
    previous_height = max(0, current_height - lookback)

    current, previous = await asyncio.gather(
        adapter.native_balance_at(address, current_height),
        adapter.native_balance_at(address, previous_height),
    )
    return BalanceDiffRecord(
        current=current,
        previous=previous,
        current_height=current_height,
        previous_height=previous_height,
    )


@dataclass
class AddressResult:
    """Outcome for one address: either data or a classified error."""

    address: str
    record: Optional[BalanceDiffRecord] = None
    tokens: List[TokenBalanceRecord] = field(default_factory=list)
    explorer: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None
    error_code: Optional[str] = None
    is_rpc_error: bool = False
    exit_code: ExitCode = ExitCode.OK

    @property
    def ok(self) -> bool:
        return self.error is None


async def fetch_address_data(
    adapter: ChainAdapter,
    network: NetworkDescriptor,
    address: str,
    lookback: int,
    include_tokens: bool = True,
) -> AddressResult:
    """Diff plus optional token balances for one address. Never raises."""
    try:
        adapter.require_valid_address(address)
        if include_tokens and network.tokens:
            record, tokens = await asyncio.gather(
                compute_diff(adapter, address, lookback),
                adapter.token_balances(address, network.tokens),
            )
        else:
            record, tokens = await compute_diff(adapter, address, lookback), []
    except Exception as exc:
        return _failed(address, exc)

    return AddressResult(
        address=address,
        record=record,
        tokens=list(tokens),
        explorer=adapter.explorer_url(address),
    )


def _failed(address: str, exc: BaseException) -> AddressResult:
    rpc = is_rpc_error(exc)
    logger.debug("Balance lookup for %s failed: %s", address, exc)
    return AddressResult(
        address=address,
        error=getattr(exc, "message", None) or str(exc) or type(exc).__name__,
        error_code=error_code_for(exc),
        is_rpc_error=rpc,
        exit_code=exit_code_for(exc),
    )


async def fetch_batch(
    adapter: ChainAdapter,
    network: NetworkDescriptor,
    addresses: Sequence[str],
    lookback: int,
    include_tokens: bool = True,
) -> List[AddressResult]:
    """One result per input address, in input order."""
    if not addresses:
        return []
    results = await asyncio.gather(
        *(fetch_address_data(adapter, network, address, lookback, include_tokens) for address in addresses)
    )
    return list(results)


__all__ = ["AddressResult", "compute_diff", "fetch_address_data", "fetch_batch"]
