"""
Watch-Mode Scheduler.

Polls one address on a fixed-rate schedule and decides when the run ends.

    idle -> polling -> stopped | exhausted | error_exit | diff_exit | interrupted

Cancellation never interrupts a poll in flight: ``interrupt()`` and ``stop()``
set flags that are observed at tick boundaries and while waiting for the next
tick. The end-of-run summary is emitted exactly once.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from ..core.errors import is_rpc_error
from ..core.models import ExitCode, PollResult, ThresholdSpec
from ..providers.base import ChainAdapter
from .balance_diff import compute_diff
from .thresholds import evaluate_alert

logger = logging.getLogger(__name__)


class WatchState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    STOPPED = "stopped"
    EXHAUSTED = "exhausted"
    ERROR_EXIT = "error_exit"
    DIFF_EXIT = "diff_exit"
    INTERRUPTED = "interrupted"

    @property
    def terminal(self) -> bool:
        return self not in (WatchState.IDLE, WatchState.POLLING)


@dataclass(frozen=True, slots=True)
class WatchConfig:
    address: str
    lookback: int
    interval_s: float
    count: Optional[int] = None
    exit_on_error: bool = False
    exit_on_diff: bool = False
    absolute: Optional[ThresholdSpec] = None
    percentage: Optional[ThresholdSpec] = None

    def __post_init__(self) -> None:
        if self.lookback <= 0:
            raise ValueError("lookback must be positive")
        if self.interval_s <= 0:
            raise ValueError("interval must be positive")
        if self.count is not None and self.count <= 0:
            raise ValueError("count must be positive")


@dataclass(frozen=True, slots=True)
class WatchSummary:
    polls: int
    exit_code: ExitCode
    reason: str
    alerts: int = 0


class WatchReporter(Protocol):
    def watch_started(self, config: WatchConfig) -> None: ...

    def poll(self, result: PollResult) -> None: ...

    def watch_ended(self, summary: WatchSummary) -> None: ...


AlertHook = Callable[[PollResult], Awaitable[None]]


class WatchScheduler:
    """Drives repeated balance-diff polls for a single address."""

    def __init__(
        self,
        adapter: ChainAdapter,
        config: WatchConfig,
        reporter: WatchReporter,
        *,
        on_alert: Optional[AlertHook] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.adapter = adapter
        self.config = config
        self.reporter = reporter
        self._on_alert = on_alert
        self._clock = clock
        self._state = WatchState.IDLE
        self._polls = 0
        self._alerts = 0
        self._last_balance: Optional[int] = None
        self._interrupted = False
        self._stopped = False
        self._wake = asyncio.Event()
        self._summary: Optional[WatchSummary] = None

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def summary(self) -> Optional[WatchSummary]:
        return self._summary

    # ---------------------------
    # Cancellation
    # ---------------------------
    def interrupt(self) -> None:
        """Request an interrupted exit (code 130) at the next tick boundary."""
        self._interrupted = True
        self._wake.set()

    def stop(self) -> None:
        """Request a normal stop at the next tick boundary."""
        self._stopped = True
        self._wake.set()

    # ---------------------------
    # Main loop
    # ---------------------------
    async def run(self) -> ExitCode:
        if self._state is not WatchState.IDLE:
            raise RuntimeError(f"Watch already {self._state.value}")
        self._state = WatchState.POLLING
        logger.debug(
            "Watching %s every %ss (count=%s)",
            self.config.address, self.config.interval_s, self.config.count,
        )

        try:
            self.reporter.watch_started(self.config)
            next_start = self._clock()
            while True:
                if self._interrupted:
                    return self._finish(WatchState.INTERRUPTED)
                if self._stopped:
                    return self._finish(WatchState.STOPPED)

                result = await self._tick()
                self._report(result)
                if result.alert.triggered:
                    self._alerts += 1
                    await self._notify(result)

                if not result.ok and result.is_rpc_error and self.config.exit_on_error:
                    return self._finish(WatchState.ERROR_EXIT)
                if result.alert.triggered and self.config.exit_on_diff:
                    return self._finish(WatchState.DIFF_EXIT)
                if self.config.count is not None and self._polls >= self.config.count:
                    return self._finish(WatchState.EXHAUSTED)

                next_start += self.config.interval_s
                now = self._clock()
                if next_start <= now:
                    # overran the interval; start again now without catching up
                    next_start = now
                await self._sleep(next_start - now)
        except asyncio.CancelledError:
            self._finish(WatchState.INTERRUPTED)
            raise
        except Exception:
            self._finish(WatchState.ERROR_EXIT)
            raise

    async def _tick(self) -> PollResult:
        self._polls += 1
        sequence = self._polls
        address = self.config.address
        try:
            record = await compute_diff(self.adapter, address, self.config.lookback)
        except Exception as exc:
            rpc = is_rpc_error(exc)
            logger.warning("Poll %d for %s failed: %s", sequence, address, exc)
            return PollResult(
                sequence=sequence,
                address=address,
                error=getattr(exc, "message", None) or str(exc) or type(exc).__name__,
                is_rpc_error=rpc,
            )

        alert = evaluate_alert(
            record,
            self.adapter.network.native_decimals,
            self.config.absolute,
            self.config.percentage,
        )
        since_last = None if self._last_balance is None else record.current.raw - self._last_balance
        self._last_balance = record.current.raw
        return PollResult(
            sequence=sequence,
            address=address,
            record=record,
            alert=alert,
            since_last=since_last,
        )

    def _report(self, result: PollResult) -> None:
        try:
            self.reporter.poll(result)
        except Exception as exc:
            logger.warning("Reporter failed for poll %d: %s", result.sequence, exc)

    async def _notify(self, result: PollResult) -> None:
        if self._on_alert is None:
            return
        try:
            await self._on_alert(result)
        except Exception as exc:
            logger.warning("Alert hook failed for poll %d: %s", result.sequence, exc)

    async def _sleep(self, delay: float) -> None:
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    def _finish(self, state: WatchState) -> ExitCode:
        if self._summary is None:
            self._state = state
            self._summary = WatchSummary(
                polls=self._polls,
                exit_code=self._exit_code(state),
                reason=state.value,
                alerts=self._alerts,
            )
            logger.debug("Watch ended: %s after %d polls", state.value, self._polls)
            try:
                self.reporter.watch_ended(self._summary)
            except Exception as exc:
                logger.warning("Reporter failed to record the watch summary: %s", exc)
        return self._summary.exit_code

    def _exit_code(self, state: WatchState) -> ExitCode:
        if state is WatchState.INTERRUPTED:
            return ExitCode.INTERRUPTED
        if state is WatchState.ERROR_EXIT:
            return ExitCode.RPC_ERROR
        if state is WatchState.DIFF_EXIT:
            return ExitCode.DIFF
        return ExitCode.DIFF if self._alerts else ExitCode.OK


__all__ = ["WatchConfig", "WatchReporter", "WatchScheduler", "WatchState", "WatchSummary"]
