"""Command-line entry point for balance-diff.

Exit codes: 0 ok, 1 alert or usage/validation error, 2 RPC failure, 130 interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, TextIO, Tuple

import httpx
import structlog

from . import __version__
from .config import settings
from .core.errors import BalanceDiffError, InvalidArgumentError
from .core.models import AlertOutcome, ExitCode, PollResult, ThresholdSpec
from .core.networks import NetworkDescriptor, get_network
from .logging_config import setup_logging
from .output import json_output
from .output.text import TextPrinter, TextWatchReporter, error_hints, hints_for_code, shorten
from .providers import create_adapter
from .providers.base import ChainAdapter
from .services.balance_diff import AddressResult, fetch_address_data, fetch_batch
from .services.profiles import parse_address_list, resolve_profile
from .services.thresholds import evaluate_alert, parse_threshold
from .services.watch import WatchConfig, WatchScheduler
from .services.webhook import WebhookNotifier

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RunOptions:
    addresses: Tuple[str, ...] = ()
    network: str = "mainnet"
    blocks: int = 50
    include_tokens: bool = True
    json: bool = False
    list_networks: bool = False
    watch: bool = False
    interval: float = 30.0
    count: Optional[int] = None
    exit_on_error: bool = False
    exit_on_diff: bool = False
    alert_if_diff: Optional[str] = None
    alert_pct: Optional[str] = None
    timeout: float = 30.0
    webhook: Optional[str] = None
    verbose: bool = False


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit 1, not argparse's default 2 (reserved for RPC failures)."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise InvalidArgumentError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="balance-diff",
        description="Show wallet balance changes over the last N blocks/slots on EVM, Solana and TON networks.",
    )
    source = parser.add_argument_group("addresses")
    source.add_argument("-a", "--address", help="Wallet address")
    source.add_argument("-A", "--addresses", help="Multiple addresses (comma-separated or file path)")
    source.add_argument("-p", "--profile", help="Use saved profile from config file")
    source.add_argument("--config", help="Path to config file")

    parser.add_argument("-n", "--network", help=f"Network key (default: {settings.default_network})")
    parser.add_argument("-b", "--blocks", type=int, default=settings.default_blocks, help="Lookback in blocks/slots")
    parser.add_argument("--no-tokens", dest="tokens", action="store_false", help="Skip token balance checks")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--list-networks", action="store_true", help="List supported networks")

    watch = parser.add_argument_group("watch mode")
    watch.add_argument("-w", "--watch", action="store_true", help="Poll continuously")
    watch.add_argument("-i", "--interval", type=float, default=settings.watch_interval_seconds, help="Seconds between polls")
    watch.add_argument("-c", "--count", type=int, help="Stop after N polls")
    watch.add_argument("--exit-on-error", action="store_true", help="Exit 2 on RPC error")
    watch.add_argument("--exit-on-diff", action="store_true", help="Exit 1 as soon as a threshold triggers")

    alerts = parser.add_argument_group("alerts")
    alerts.add_argument("--alert-if-diff", help='Exit 1 if diff matches threshold (e.g. ">0.01", "<-1")')
    alerts.add_argument("--alert-pct", help='Exit 1 if diff exceeds %% of previous balance (e.g. ">5", "<-10")')
    alerts.add_argument("--webhook", help="POST JSON payload to URL when an alert triggers")

    parser.add_argument("--timeout", type=float, default=settings.request_timeout_seconds, help="RPC request timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_options(argv: Optional[Sequence[str]] = None) -> RunOptions:
    args = build_parser().parse_args(argv)

    network = args.network
    addresses: List[str] = []
    if args.profile:
        profile = resolve_profile(args.profile, explicit=args.config)
        addresses = profile.addresses
        if not network and profile.network:
            network = profile.network
    elif args.address:
        addresses = [args.address.strip()]
    elif args.addresses:
        addresses = parse_address_list(args.addresses)

    if not args.list_networks and not addresses:
        raise InvalidArgumentError(
            "No address given",
            details={"hint": "Use -a/--address, -A/--addresses or -p/--profile"},
        )
    if args.blocks < 1:
        raise InvalidArgumentError(f"Invalid blocks value: {args.blocks}", details={"hint": "Please provide a positive integer."})
    if args.interval <= 0:
        raise InvalidArgumentError(f"Invalid interval: {args.interval:g}")
    if args.count is not None and args.count < 1:
        raise InvalidArgumentError(f"Invalid count: {args.count}")
    if args.timeout <= 0:
        raise InvalidArgumentError(f"Invalid timeout: {args.timeout:g}")

    return RunOptions(
        addresses=tuple(addresses),
        network=network or settings.default_network,
        blocks=args.blocks,
        include_tokens=args.tokens,
        json=args.json,
        list_networks=args.list_networks,
        watch=args.watch,
        interval=args.interval,
        count=args.count,
        exit_on_error=args.exit_on_error,
        exit_on_diff=args.exit_on_diff,
        alert_if_diff=args.alert_if_diff,
        alert_pct=args.alert_pct,
        timeout=args.timeout,
        webhook=args.webhook,
        verbose=args.verbose,
    )


def parse_thresholds(options: RunOptions) -> Tuple[Optional[ThresholdSpec], Optional[ThresholdSpec]]:
    """Malformed thresholds are ignored with a warning."""
    specs: List[Optional[ThresholdSpec]] = []
    for flag, text in (("--alert-if-diff", options.alert_if_diff), ("--alert-pct", options.alert_pct)):
        spec = parse_threshold(text)
        if text and spec is None:
            logger.warning("threshold_ignored", flag=flag, value=text)
        specs.append(spec)
    return specs[0], specs[1]


class Runner:
    """Executes one invocation against a single network."""

    def __init__(
        self,
        options: RunOptions,
        *,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.options = options
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        self.transport = transport
        self.printer = TextPrinter(self.stdout, colors=not options.json)
        self.network: Optional[NetworkDescriptor] = None
        self.absolute, self.percentage = parse_thresholds(options)
        self.webhook = WebhookNotifier(options.webhook, transport=transport) if options.webhook else None

    # ---------------------------
    # Output helpers
    # ---------------------------
    def emit_json(self, payload: Dict) -> None:
        print(json_output.dumps(payload), file=self.stdout)

    def report_error(self, error: BaseException) -> ExitCode:
        envelope = json_output.build_error(error)
        if self.options.json:
            self.emit_json(envelope)
        else:
            TextPrinter(self.stderr, colors=False).error(envelope["error"], error_hints(error, self.network))
        return ExitCode(envelope["exitCode"])

    @property
    def thresholds_active(self) -> bool:
        return self.absolute is not None or self.percentage is not None

    def alert_for(self, network: NetworkDescriptor, result: AddressResult) -> AlertOutcome:
        if result.record is None:
            return AlertOutcome()
        return evaluate_alert(result.record, network.native_decimals, self.absolute, self.percentage)

    def threshold_description(self) -> str:
        if self.absolute is not None:
            return str(self.absolute)
        return f"{self.percentage}%"

    async def notify(self, payload: Dict) -> None:
        if self.webhook is not None:
            await self.webhook.send(payload)

    # ---------------------------
    # Modes
    # ---------------------------
    async def run(self) -> ExitCode:
        try:
            return await self._run()
        except BalanceDiffError as exc:
            return self.report_error(exc)

    async def _run(self) -> ExitCode:
        options = self.options
        if options.list_networks:
            if options.json:
                self.emit_json(json_output.build_network_list())
            else:
                self.printer.network_list()
            return ExitCode.OK

        network = get_network(options.network)
        self.network = network
        addresses = list(options.addresses)
        if options.watch and len(addresses) != 1:
            raise InvalidArgumentError("Watch mode only supports a single address.")

        adapter = create_adapter(network, timeout_s=options.timeout, transport=self.transport)
        if options.watch or len(addresses) == 1:
            # fail fast before touching the network
            for address in addresses:
                adapter.require_valid_address(address)

        if not options.json:
            self.printer.line()
            self.printer.line(f"🔗 Connecting to {self.printer.c('bright')}{network.name}{self.printer.c('reset')}...")

        async with adapter:
            if options.watch:
                return await self.run_watch(adapter, network, addresses[0])
            if len(addresses) > 1:
                return await self.run_batch(adapter, network, addresses)
            return await self.run_single(adapter, network, addresses[0])

    async def run_single(self, adapter: ChainAdapter, network: NetworkDescriptor, address: str) -> ExitCode:
        options = self.options
        if not options.json:
            self.printer.line(f"📊 Fetching balance data for {shorten(address)}")

        result = await fetch_address_data(adapter, network, address, options.blocks, options.include_tokens)
        if not result.ok:
            envelope = json_output.build_error_envelope(result.error or "lookup failed", result.error_code, result.exit_code)
            if options.json:
                self.emit_json(envelope)
            else:
                TextPrinter(self.stderr, colors=False).error(envelope["error"], hints_for_code(result.error_code, network))
            return result.exit_code

        outcome = self.alert_for(network, result)
        payload = json_output.build_result(
            network,
            result,
            json_output.alert_block(outcome, self.absolute, self.percentage),
        )
        if options.json:
            self.emit_json(payload)
        else:
            self.printer.address_report(network, result, options.blocks, tokens_requested=options.include_tokens)
            if outcome.triggered:
                self.printer.alert(self.threshold_description())

        if outcome.triggered:
            await self.notify(payload)
            return ExitCode.DIFF
        return ExitCode.OK

    async def run_batch(self, adapter: ChainAdapter, network: NetworkDescriptor, addresses: List[str]) -> ExitCode:
        options = self.options
        if not options.json:
            self.printer.line(f"📊 Fetching data for {len(addresses)} addresses...")

        results = await fetch_batch(adapter, network, addresses, options.blocks, options.include_tokens)
        outcomes = [self.alert_for(network, result) for result in results]

        exit_code = ExitCode.OK
        for result, outcome in zip(results, outcomes):
            if not result.ok:
                exit_code = max(exit_code, result.exit_code)
            elif outcome.triggered:
                exit_code = max(exit_code, ExitCode.DIFF)

        triggered = next((outcome for outcome in outcomes if outcome.triggered), AlertOutcome())
        alerts = None
        aggregate = None
        if self.thresholds_active:
            alerts = [json_output.alert_block(outcome, self.absolute, self.percentage) for outcome in outcomes]
            aggregate = json_output.alert_block(triggered, self.absolute, self.percentage)
        payload = json_output.build_batch(network, results, alerts, aggregate)

        if options.json:
            self.emit_json(payload)
        else:
            self.printer.batch_summary(network, results)
            if triggered.triggered:
                self.printer.alert(self.threshold_description())

        if triggered.triggered:
            await self.notify(payload)
        return ExitCode(exit_code)

    async def run_watch(self, adapter: ChainAdapter, network: NetworkDescriptor, address: str) -> ExitCode:
        options = self.options
        config = WatchConfig(
            address=address,
            lookback=options.blocks,
            interval_s=options.interval,
            count=options.count,
            exit_on_error=options.exit_on_error,
            exit_on_diff=options.exit_on_diff,
            absolute=self.absolute,
            percentage=self.percentage,
        )
        if options.json:
            reporter = json_output.JsonWatchReporter(network, self.stdout)
        else:
            reporter = TextWatchReporter(network, self.printer)

        async def on_alert(poll: PollResult) -> None:
            payload = json_output.build_poll(network, poll)
            payload["network"] = json_output.network_block(network)
            await self.notify(payload)

        scheduler = WatchScheduler(adapter, config, reporter, on_alert=on_alert)
        with interrupt_on_signals(scheduler):
            return await scheduler.run()


@contextmanager
def interrupt_on_signals(scheduler: WatchScheduler) -> Iterator[None]:
    """Route SIGINT/SIGTERM to ``scheduler.interrupt`` for the duration of a watch."""
    loop = asyncio.get_running_loop()
    installed: List[int] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.interrupt)
        except (NotImplementedError, RuntimeError, ValueError):
            # no loop signal support; KeyboardInterrupt cancels the run instead
            continue
        installed.append(sig)
    try:
        yield
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


async def execute(
    options: RunOptions,
    *,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ExitCode:
    runner = Runner(options, stdout=stdout, stderr=stderr, transport=transport)
    return await runner.run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    json_mode = "--json" in argv
    try:
        options = parse_options(argv)
    except BalanceDiffError as exc:
        setup_logging()
        envelope = json_output.build_error(exc)
        if json_mode:
            print(json_output.dumps(envelope))
        else:
            TextPrinter(sys.stderr, colors=False).error(envelope["error"], error_hints(exc))
        return int(envelope["exitCode"])

    setup_logging("DEBUG" if options.verbose else None)
    try:
        return int(asyncio.run(execute(options)))
    except KeyboardInterrupt:
        return int(ExitCode.INTERRUPTED)


if __name__ == "__main__":
    sys.exit(main())
