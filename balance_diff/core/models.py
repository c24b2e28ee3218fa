"""Domain records shared by adapters, the diff engine and the watch scheduler."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Optional


class ChainFamily(str, Enum):
    """Chain families sharing a balance/height query model."""

    EVM = "evm"
    SOLANA = "solana"
    TON = "ton"

    @property
    def height_label(self) -> str:
        """JSON/text label for the height unit."""
        return "slot" if self is ChainFamily.SOLANA else "block"


class ExitCode(IntEnum):
    OK = 0
    DIFF = 1
    RPC_ERROR = 2
    INTERRUPTED = 130


@dataclass(frozen=True, slots=True)
class BalanceSnapshot:
    """Raw balance observed at a height.

    ``historical`` is False when the adapter answered with latest state because
    the chain (or node) cannot serve the requested height.
    """

    raw: int
    height: int
    decimals: int
    historical: bool = True


@dataclass(frozen=True, slots=True)
class BalanceDiffRecord:
    current: BalanceSnapshot
    previous: BalanceSnapshot
    current_height: int
    previous_height: int
    diff: int = field(init=False)

    def __post_init__(self) -> None:
        if self.current_height < 0 or self.previous_height < 0:
            raise ValueError("heights must be non-negative")
        if self.previous_height > self.current_height:
            raise ValueError("previous height cannot exceed current height")
        object.__setattr__(self, "diff", self.current.raw - self.previous.raw)

    @property
    def diff_sign(self) -> str:
        return "positive" if self.diff >= 0 else "negative"


@dataclass(frozen=True, slots=True)
class TokenBalanceRecord:
    symbol: str
    identifier: str
    raw: int
    decimals: int
    formatted: str


class ThresholdOperator(str, Enum):
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="

    def compare(self, left: Decimal, right: Decimal) -> bool:
        if self is ThresholdOperator.GT:
            return left > right
        if self is ThresholdOperator.GTE:
            return left >= right
        if self is ThresholdOperator.LT:
            return left < right
        return left <= right


@dataclass(frozen=True, slots=True)
class ThresholdSpec:
    operator: ThresholdOperator
    value: Decimal
    source: str = ""

    def __str__(self) -> str:
        return self.source or f"{self.operator.value}{self.value}"


@dataclass(frozen=True, slots=True)
class AlertOutcome:
    triggered: bool = False
    triggered_by: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PollResult:
    """One watch-mode poll: either a diff or a classified error."""

    sequence: int
    address: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    record: Optional[BalanceDiffRecord] = None
    alert: AlertOutcome = field(default_factory=AlertOutcome)
    since_last: Optional[int] = None
    error: Optional[str] = None
    is_rpc_error: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = [
    "ChainFamily",
    "ExitCode",
    "BalanceSnapshot",
    "BalanceDiffRecord",
    "TokenBalanceRecord",
    "ThresholdOperator",
    "ThresholdSpec",
    "AlertOutcome",
    "PollResult",
]
