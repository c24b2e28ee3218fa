"""
JSON envelopes.

Every document carries ``schemaVersion``. Balances are rendered twice: a display
string rounded to six places and the exact raw integer as a string.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, TextIO

from ..core.amounts import format_display
from ..core.errors import error_code_for, exit_code_for
from ..core.models import AlertOutcome, BalanceDiffRecord, ChainFamily, PollResult, ThresholdSpec, TokenBalanceRecord
from ..core.networks import NetworkDescriptor, networks_by_family
from ..services.balance_diff import AddressResult
from ..services.watch import WatchConfig, WatchSummary

SCHEMA_VERSION = "0.1.0"


def iso_timestamp(value: Optional[datetime] = None) -> str:
    stamp = (value or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def dumps(payload: Dict[str, Any], *, compact: bool = False) -> str:
    if compact:
        return json.dumps(payload, separators=(",", ":"))
    return json.dumps(payload, indent=2)


def network_block(network: NetworkDescriptor) -> Dict[str, Any]:
    return {
        "key": network.key,
        "name": network.name,
        "chainType": network.chain_family.value,
        "chainId": network.chain_id,
    }


def native_block(network: NetworkDescriptor, record: BalanceDiffRecord) -> Dict[str, Any]:
    decimals = network.native_decimals
    return {
        "symbol": network.native_symbol,
        "decimals": decimals,
        "balance": format_display(record.current.raw, decimals),
        "balanceRaw": str(record.current.raw),
        "diff": format_display(abs(record.diff), decimals),
        "diffRaw": str(record.diff),
        "diffSign": record.diff_sign,
    }


def token_block(tokens: Sequence[TokenBalanceRecord]) -> List[Dict[str, Any]]:
    return [
        {
            "symbol": token.symbol,
            "address": token.identifier,
            "decimals": token.decimals,
            "balance": token.formatted,
            "balanceRaw": str(token.raw),
        }
        for token in tokens
    ]


def alert_block(
    outcome: AlertOutcome,
    absolute: Optional[ThresholdSpec],
    percentage: Optional[ThresholdSpec],
) -> Optional[Dict[str, Any]]:
    """None when no threshold is active."""
    if absolute is None and percentage is None:
        return None
    return {
        "threshold": str(absolute) if absolute else None,
        "thresholdPct": str(percentage) if percentage else None,
        "triggered": outcome.triggered,
        "triggeredBy": outcome.triggered_by,
    }


def build_result(
    network: NetworkDescriptor,
    result: AddressResult,
    alert: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Single-address document. ``result`` must carry data."""
    record = result.record
    if record is None:
        raise ValueError(f"No balance data for {result.address}")
    payload: Dict[str, Any] = {
        "schemaVersion": SCHEMA_VERSION,
        "network": network_block(network),
        "address": result.address,
        "explorer": result.explorer,
        network.chain_family.height_label: {
            "current": record.current_height,
            "previous": record.previous_height,
        },
        "native": native_block(network, record),
        "tokens": token_block(result.tokens),
        "timestamp": iso_timestamp(result.timestamp),
    }
    if alert is not None:
        payload["alert"] = alert
    return payload


def build_batch(
    network: NetworkDescriptor,
    results: Sequence[AddressResult],
    alerts: Optional[Sequence[Optional[Dict[str, Any]]]] = None,
    aggregate_alert: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    entries: List[Dict[str, Any]] = []
    for index, result in enumerate(results):
        if not result.ok:
            entries.append({"address": result.address, "error": result.error, "code": result.error_code})
            continue
        item = build_result(network, result, alerts[index] if alerts else None)
        item.pop("schemaVersion", None)
        item.pop("network", None)
        entries.append(item)

    success = sum(1 for result in results if result.ok)
    payload: Dict[str, Any] = {
        "schemaVersion": SCHEMA_VERSION,
        "network": network_block(network),
        "addresses": entries,
        "summary": {
            "totalAddresses": len(results),
            "successCount": success,
            "errorCount": len(results) - success,
        },
        "timestamp": iso_timestamp(),
    }
    if aggregate_alert is not None:
        payload["alert"] = aggregate_alert
    return payload


def build_error_envelope(message: str, code: Optional[str], exit_code: int) -> Dict[str, Any]:
    return {
        "schemaVersion": SCHEMA_VERSION,
        "error": message,
        "code": code,
        "exitCode": int(exit_code),
    }


def build_error(error: BaseException) -> Dict[str, Any]:
    message = getattr(error, "message", None) or str(error) or type(error).__name__
    return build_error_envelope(message, error_code_for(error), exit_code_for(error))


def build_network_list() -> Dict[str, Any]:
    payload: Dict[str, Any] = {"schemaVersion": SCHEMA_VERSION}
    for family in ChainFamily:
        entries = []
        for network in networks_by_family(family):
            entry: Dict[str, Any] = {"key": network.key, "name": network.name, "symbol": network.native_symbol}
            if family is ChainFamily.EVM:
                entry["chainId"] = network.chain_id
            entries.append(entry)
        payload[family.value] = entries
    return payload


def build_watch_start(network: NetworkDescriptor, config: WatchConfig) -> Dict[str, Any]:
    return {
        "schemaVersion": SCHEMA_VERSION,
        "type": "watch_start",
        "timestamp": iso_timestamp(),
        "network": network.key,
        "address": config.address,
        "blocks": config.lookback,
        "interval": config.interval_s,
        "count": config.count,
        "threshold": str(config.absolute) if config.absolute else None,
        "thresholdPct": str(config.percentage) if config.percentage else None,
    }


def build_poll(network: NetworkDescriptor, poll: PollResult) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "schemaVersion": SCHEMA_VERSION,
        "type": "poll",
        "poll": poll.sequence,
        "timestamp": iso_timestamp(poll.timestamp),
        "address": poll.address,
    }
    if poll.record is None:
        payload["error"] = poll.error
        payload["isRpcError"] = poll.is_rpc_error
        return payload

    record = poll.record
    decimals = network.native_decimals
    payload[network.chain_family.height_label] = record.current_height
    payload.update(
        balance=format_display(record.current.raw, decimals),
        balanceRaw=str(record.current.raw),
        diff=format_display(abs(record.diff), decimals),
        diffRaw=str(record.diff),
        diffSign=record.diff_sign,
        sinceLastRaw=None if poll.since_last is None else str(poll.since_last),
        alert=poll.alert.triggered,
        triggeredBy=poll.alert.triggered_by,
    )
    return payload


def build_watch_end(summary: WatchSummary) -> Dict[str, Any]:
    return {
        "schemaVersion": SCHEMA_VERSION,
        "type": "watch_end",
        "timestamp": iso_timestamp(),
        "polls": summary.polls,
        "exitCode": int(summary.exit_code),
        "reason": summary.reason,
    }


class JsonWatchReporter:
    """Newline-delimited JSON stream: start, one line per poll, end."""

    def __init__(self, network: NetworkDescriptor, stream: Optional[TextIO] = None) -> None:
        self.network = network
        self.stream = stream or sys.stdout

    def _emit(self, payload: Dict[str, Any]) -> None:
        self.stream.write(dumps(payload, compact=True) + "\n")
        self.stream.flush()

    def watch_started(self, config: WatchConfig) -> None:
        self._emit(build_watch_start(self.network, config))

    def poll(self, result: PollResult) -> None:
        self._emit(build_poll(self.network, result))

    def watch_ended(self, summary: WatchSummary) -> None:
        self._emit(build_watch_end(summary))


__all__ = [
    "SCHEMA_VERSION",
    "JsonWatchReporter",
    "alert_block",
    "build_batch",
    "build_error",
    "build_error_envelope",
    "build_network_list",
    "build_poll",
    "build_result",
    "build_watch_end",
    "build_watch_start",
    "dumps",
    "iso_timestamp",
]
