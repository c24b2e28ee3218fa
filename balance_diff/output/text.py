"""Human-readable terminal output."""

from __future__ import annotations

import sys
from typing import List, Optional, Sequence, TextIO

from ..core.amounts import format_display
from ..core.errors import AddressError, RpcConnectionError, RpcError, UnknownNetworkError, is_rpc_error
from ..core.models import ChainFamily, PollResult
from ..core.networks import NetworkDescriptor, networks_by_family
from ..services.balance_diff import AddressResult
from ..services.watch import WatchConfig, WatchSummary

COLORS = {
    "reset": "\x1b[0m",
    "bright": "\x1b[1m",
    "dim": "\x1b[2m",
    "green": "\x1b[32m",
    "red": "\x1b[31m",
    "yellow": "\x1b[33m",
    "cyan": "\x1b[36m",
}


class TextPrinter:
    """Writes reports to ``stream``; colours are optional."""

    def __init__(self, stream: Optional[TextIO] = None, *, colors: bool = True) -> None:
        self.stream = stream or sys.stdout
        self.colors = colors

    def c(self, name: str) -> str:
        return COLORS[name] if self.colors else ""

    def line(self, text: str = "") -> None:
        print(text, file=self.stream)

    def separator(self, char: str = "─", length: int = 65) -> None:
        self.line(f"{self.c('dim')}{char * length}{self.c('reset')}")

    def key_value(self, key: str, value: object, indent: int = 2) -> None:
        self.line(f"{' ' * indent}{self.c('cyan')}{key}:{self.c('reset')} {value}")

    def signed(self, raw: int, symbol: str, decimals: int) -> str:
        prefix, color = ("+", "green") if raw >= 0 else ("-", "red")
        return f"{self.c(color)}{prefix}{format_display(abs(raw), decimals)} {symbol}{self.c('reset')}"

    # ---------------------------
    # Reports
    # ---------------------------
    def network_list(self) -> None:
        self.line()
        self.line("📡 Supported Networks:")
        titles = {ChainFamily.EVM: "EVM Chains", ChainFamily.SOLANA: "Solana Chains", ChainFamily.TON: "TON Chains"}
        for family in ChainFamily:
            self.line()
            self.line(f"  {titles[family]}:")
            for network in networks_by_family(family):
                self.line(f"    {self.c('cyan')}{network.key:<14}{self.c('reset')} {network.name} ({network.native_symbol})")
        self.line()
        self.line("Usage:")
        self.line("  balance-diff --address <ADDR> --network mainnet")
        self.line("  balance-diff --address <ADDR> --network solana")
        self.line("  balance-diff --address <ADDR> --network ton --json")
        self.line()

    def address_report(
        self,
        network: NetworkDescriptor,
        result: AddressResult,
        lookback: int,
        *,
        tokens_requested: bool = True,
    ) -> None:
        record = result.record
        if record is None:
            return
        decimals = network.native_decimals
        height_label = network.chain_family.height_label

        self.line()
        self.separator("═")
        self.line(f"{self.c('bright')}  {network.name}{self.c('reset')}")
        self.separator()
        self.key_value(f"Current {height_label}", f"{record.current_height:,}")
        self.key_value("Address", result.address)
        if result.explorer:
            self.key_value("Explorer", result.explorer)
        self.separator()
        self.key_value("Native balance", f"{format_display(record.current.raw, decimals)} {network.native_symbol}")
        diff = self.signed(record.diff, network.native_symbol, decimals)
        self.line(f"  {self.c('cyan')}Δ over {lookback} {height_label}s:{self.c('reset')} {diff}")
        self.line(f"    {self.c('dim')}({record.previous_height:,} → {record.current_height:,}){self.c('reset')}")
        if not record.previous.historical:
            self.line(f"    {self.c('dim')}(historical balance unavailable, latest state shown){self.c('reset')}")

        if result.tokens:
            self.separator()
            self.line(f"  {self.c('bright')}Tokens:{self.c('reset')}")
            for token in result.tokens:
                self.line(f"    {self.c('cyan')}{token.symbol:<10}{self.c('reset')} {token.formatted}")
        elif tokens_requested and network.tokens:
            self.separator()
            self.line(f"  {self.c('dim')}Tokens: (no balances found){self.c('reset')}")

        self.separator("═")
        self.line()

    def batch_summary(self, network: NetworkDescriptor, results: Sequence[AddressResult]) -> None:
        decimals = network.native_decimals
        symbol = network.native_symbol
        self.line()
        self.separator("═")
        self.line(f"{self.c('bright')}  {network.name} — {len(results)} addresses{self.c('reset')}")
        self.separator("═")

        total_balance = 0
        total_diff = 0
        for result in results:
            if result.record is None:
                self.line(f"  {self.c('red')}✗{self.c('reset')} {result.address}: {result.error}")
                continue
            balance = format_display(result.record.current.raw, decimals)
            diff = self.signed(result.record.diff, symbol, decimals)
            self.line(f"  {self.c('green')}✓{self.c('reset')} {shorten(result.address)}  {balance:>12} {symbol}  {diff}")
            total_balance += result.record.current.raw
            total_diff += result.record.diff

        self.separator()
        total = format_display(total_balance, decimals)
        self.line(
            f"  {self.c('bright')}Total:{self.c('reset')}      {total:>12} {symbol}  "
            f"{self.signed(total_diff, symbol, decimals)}"
        )
        self.separator("═")
        self.line()

    def alert(self, description: str) -> None:
        self.line(f"{self.c('yellow')}⚠️  Alert: threshold {description} triggered{self.c('reset')}")
        self.line()

    def error(self, message: str, hints: Sequence[str] = ()) -> None:
        self.line()
        self.line(f"❌ {message}")
        for hint in hints:
            self.line(f"   {hint}")
        self.line()


def shorten(address: str) -> str:
    if len(address) <= 20:
        return address
    return f"{address[:8]}...{address[-6:]}"


def rpc_hints(network: Optional[NetworkDescriptor] = None) -> List[str]:
    env = network.rpc_env if network is not None and network.rpc_env else "RPC_URL_*"
    return [f"Check that the RPC endpoint is reachable, or set {env} to use another provider."]


def hints_for_code(code: Optional[str], network: Optional[NetworkDescriptor] = None) -> List[str]:
    if code in (RpcError.code, RpcConnectionError.code):
        return rpc_hints(network)
    return []


def error_hints(error: BaseException, network: Optional[NetworkDescriptor] = None) -> List[str]:
    if isinstance(error, AddressError) and error.hint:
        return [error.hint]
    if isinstance(error, UnknownNetworkError):
        return ["Run with --list-networks to see available options."]
    if is_rpc_error(error):
        return rpc_hints(network)
    hint = getattr(error, "details", None) and error.details.get("hint")
    return [hint] if hint else []


class TextWatchReporter:
    """One line per poll with a since-last delta and an alert marker."""

    def __init__(self, network: NetworkDescriptor, printer: TextPrinter) -> None:
        self.network = network
        self.printer = printer
        self.lookback = 0

    def watch_started(self, config: WatchConfig) -> None:
        p = self.printer
        self.lookback = config.lookback
        p.line()
        p.line(f"🔄 {p.c('bright')}Watch mode{p.c('reset')} — monitoring {shorten(config.address)}")
        p.line(f"   Network: {self.network.name}")
        p.line(f"   Interval: {config.interval_s:g}s")
        if config.count is not None:
            p.line(f"   Count: {config.count} polls")
        if config.absolute:
            p.line(f"   Threshold: {config.absolute}")
        if config.percentage:
            p.line(f"   Threshold (%): {config.percentage}")
        p.line("   Press Ctrl+C to exit")
        p.line()
        p.separator()

    def poll(self, result: PollResult) -> None:
        p = self.printer
        stamp = result.timestamp.astimezone().strftime("%H:%M:%S")
        if result.record is None:
            p.line(f"  [{stamp}] {p.c('red')}Error: {result.error}{p.c('reset')}")
            return

        decimals = self.network.native_decimals
        symbol = self.network.native_symbol
        balance = format_display(result.record.current.raw, decimals)
        diff = p.signed(result.record.diff, symbol, decimals)
        change = ""
        if result.since_last:
            sign, color = ("+", "green") if result.since_last > 0 else ("-", "red")
            change = f" {p.c(color)}({sign}{format_display(abs(result.since_last), decimals)} since last){p.c('reset')}"
        marker = f" {p.c('yellow')}⚠ ALERT{p.c('reset')}" if result.alert.triggered else ""
        p.line(f"  [{stamp}] {balance} {symbol}  Δ{self.lookback}: {diff}{change}{marker}")

    def watch_ended(self, summary: WatchSummary) -> None:
        self.printer.line()
        self.printer.line(f"👋 Watch mode stopped: {summary.reason} ({summary.polls} polls, exit {int(summary.exit_code)})")


__all__ = ["TextPrinter", "TextWatchReporter", "error_hints", "hints_for_code", "rpc_hints", "shorten"]
