"""
End-to-end runs of the command surface against a mocked EVM endpoint.
"""

import io
import json

import httpx
import pytest

from balance_diff.cli import RunOptions, execute, main, parse_options
from balance_diff.core.errors import InvalidArgumentError
from balance_diff.core.models import ExitCode

ETH = 10 ** 18
HEAD = 19_000_000
ADDRESS_A = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
ADDRESS_B = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
WEBHOOK = "https://hooks.example.com/balance"


class FakeNode:
    """Mainnet node where every address holds 1.0 ETH now and 0.98 ETH at the lookback height."""

    def __init__(self, *, refuse=False, fail_address=None):
        self.refuse = refuse
        self.fail_address = fail_address
        self.rpc_calls = []
        self.webhooks = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if str(request.url) == WEBHOOK:
            self.webhooks.append(body)
            return httpx.Response(204)
        if self.refuse:
            raise httpx.ConnectError("connection refused", request=request)

        self.rpc_calls.append(body)
        method, params = body["method"], body["params"]
        if method == "eth_chainId":
            result = "0x1"
        elif method == "eth_blockNumber":
            result = hex(HEAD)
        elif method == "eth_getBalance":
            if params[0] == self.fail_address:
                return httpx.Response(
                    200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32000, "message": "header not found"}}
                )
            result = hex(ETH if params[1] == hex(HEAD) else 98 * ETH // 100)
        elif method == "eth_call":
            result = "0x" + "0" * 64
        else:
            result = None
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


async def run(options: RunOptions, node: FakeNode):
    stdout, stderr = io.StringIO(), io.StringIO()
    code = await execute(options, stdout=stdout, stderr=stderr, transport=httpx.MockTransport(node))
    return code, stdout.getvalue(), stderr.getvalue()


# =============================================================================
# single address
# =============================================================================


@pytest.mark.asyncio
async def test_mainnet_diff_json():
    node = FakeNode()
    code, out, _ = await run(RunOptions(addresses=(ADDRESS_A,), json=True), node)

    assert code == ExitCode.OK
    payload = json.loads(out)
    assert payload["schemaVersion"] == "0.1.0"
    assert payload["network"] == {"key": "mainnet", "name": "Ethereum Mainnet", "chainType": "evm", "chainId": 1}
    assert payload["block"] == {"current": HEAD, "previous": HEAD - 50}
    assert payload["native"]["balance"] == "1"
    assert payload["native"]["balanceRaw"] == str(ETH)
    assert payload["native"]["diff"] == "0.02"
    assert payload["native"]["diffRaw"] == str(2 * 10 ** 16)
    assert payload["native"]["diffSign"] == "positive"
    assert payload["tokens"] == []
    assert payload["explorer"] == f"https://etherscan.io/address/{ADDRESS_A}"
    assert "alert" not in payload


@pytest.mark.asyncio
async def test_alert_exits_one_and_posts_webhook():
    node = FakeNode()
    options = RunOptions(addresses=(ADDRESS_A,), json=True, include_tokens=False, alert_if_diff=">0.01", webhook=WEBHOOK)
    code, out, _ = await run(options, node)

    assert code == ExitCode.DIFF
    payload = json.loads(out)
    assert payload["alert"] == {"threshold": ">0.01", "thresholdPct": None, "triggered": True, "triggeredBy": "absolute"}
    assert len(node.webhooks) == 1
    assert node.webhooks[0]["event"] == "balance_alert"
    assert node.webhooks[0]["native"]["diff"] == "0.02"


@pytest.mark.asyncio
async def test_threshold_not_met_exits_zero_without_webhook():
    node = FakeNode()
    options = RunOptions(addresses=(ADDRESS_A,), json=True, alert_pct=">5", webhook=WEBHOOK)
    code, out, _ = await run(options, node)

    assert code == ExitCode.OK
    assert json.loads(out)["alert"]["triggered"] is False
    assert node.webhooks == []


@pytest.mark.asyncio
async def test_malformed_threshold_is_ignored():
    code, out, _ = await run(RunOptions(addresses=(ADDRESS_A,), json=True, alert_if_diff="lots"), FakeNode())
    assert code == ExitCode.OK
    assert "alert" not in json.loads(out)


@pytest.mark.asyncio
async def test_invalid_address_fails_before_connecting():
    node = FakeNode()
    code, out, _ = await run(RunOptions(addresses=("0xnope",), json=True), node)

    assert code == ExitCode.DIFF
    assert json.loads(out) == {
        "schemaVersion": "0.1.0",
        "error": "Invalid EVM address: 0xnope",
        "code": "invalid_address",
        "exitCode": 1,
    }
    assert node.rpc_calls == []


@pytest.mark.asyncio
async def test_unknown_network():
    code, out, _ = await run(RunOptions(addresses=(ADDRESS_A,), network="dogechain", json=True), FakeNode())
    assert code == ExitCode.DIFF
    assert json.loads(out)["code"] == "unknown_network"


@pytest.mark.asyncio
async def test_connection_failure_exits_two():
    code, out, _ = await run(RunOptions(addresses=(ADDRESS_A,), json=True), FakeNode(refuse=True))
    assert code == ExitCode.RPC_ERROR
    envelope = json.loads(out)
    assert envelope["code"] == "connection_error"
    assert envelope["exitCode"] == 2


@pytest.mark.asyncio
async def test_text_report():
    code, out, err = await run(RunOptions(addresses=(ADDRESS_A,), include_tokens=False), FakeNode())
    assert code == ExitCode.OK
    assert "Ethereum Mainnet" in out
    assert "+0.02 ETH" in out
    assert "\x1b[" in out
    assert err == ""


@pytest.mark.asyncio
async def test_text_errors_go_to_stderr_with_hint():
    code, out, err = await run(RunOptions(addresses=(ADDRESS_A,), network="nowhere"), FakeNode())
    assert code == ExitCode.DIFF
    assert out == ""
    assert "Unknown network: nowhere" in err
    assert "--list-networks" in err


@pytest.mark.asyncio
async def test_text_connection_failure_points_at_rpc_override():
    code, out, err = await run(RunOptions(addresses=(ADDRESS_A,)), FakeNode(refuse=True))
    assert code == ExitCode.RPC_ERROR
    assert "RPC_URL_ETH" in err


@pytest.mark.asyncio
async def test_text_balance_failure_points_at_rpc_override():
    node = FakeNode(fail_address=ADDRESS_A)
    code, out, err = await run(RunOptions(addresses=(ADDRESS_A,), include_tokens=False), node)
    assert code == ExitCode.RPC_ERROR
    assert "header not found" in err
    assert "RPC_URL_ETH" in err


# =============================================================================
# batch
# =============================================================================


@pytest.mark.asyncio
async def test_batch_isolates_bad_entries():
    options = RunOptions(addresses=(ADDRESS_A, "0xbad", ADDRESS_B), json=True, include_tokens=False)
    code, out, _ = await run(options, FakeNode())

    payload = json.loads(out)
    assert code == ExitCode.DIFF
    assert payload["summary"] == {"totalAddresses": 3, "successCount": 2, "errorCount": 1}
    entries = payload["addresses"]
    assert [entry["address"] for entry in entries] == [ADDRESS_A, "0xbad", ADDRESS_B]
    assert entries[1]["code"] == "invalid_address"
    assert entries[0]["native"]["diff"] == "0.02"


@pytest.mark.asyncio
async def test_batch_rpc_failure_dominates_exit_code():
    node = FakeNode(fail_address=ADDRESS_B)
    options = RunOptions(addresses=(ADDRESS_A, ADDRESS_B), json=True, include_tokens=False, alert_if_diff=">0")
    code, out, _ = await run(options, node)

    payload = json.loads(out)
    assert code == ExitCode.RPC_ERROR
    assert payload["alert"]["triggered"] is True
    assert payload["addresses"][0]["alert"]["triggered"] is True
    assert "header not found" in payload["addresses"][1]["error"]


# =============================================================================
# watch and listing
# =============================================================================


@pytest.mark.asyncio
async def test_watch_emits_ndjson_stream():
    options = RunOptions(addresses=(ADDRESS_A,), json=True, watch=True, interval=0.01, count=2)
    code, out, _ = await run(options, FakeNode())

    lines = [json.loads(line) for line in out.splitlines()]
    assert code == ExitCode.OK
    assert [line["type"] for line in lines] == ["watch_start", "poll", "poll", "watch_end"]
    assert [line["poll"] for line in lines[1:3]] == [1, 2]
    assert lines[1]["block"] == HEAD
    assert lines[1]["diff"] == "0.02"
    assert lines[-1] == {**lines[-1], "polls": 2, "exitCode": 0, "reason": "exhausted"}


@pytest.mark.asyncio
async def test_watch_requires_single_address():
    options = RunOptions(addresses=(ADDRESS_A, ADDRESS_B), json=True, watch=True)
    code, out, _ = await run(options, FakeNode())
    assert code == ExitCode.DIFF
    assert json.loads(out)["code"] == "invalid_argument"


@pytest.mark.asyncio
async def test_list_networks_json():
    code, out, _ = await run(RunOptions(list_networks=True, json=True), FakeNode())
    payload = json.loads(out)
    assert code == ExitCode.OK
    assert {"key": "mainnet", "name": "Ethereum Mainnet", "symbol": "ETH", "chainId": 1} in payload["evm"]
    assert {entry["key"] for entry in payload["solana"]} == {"solana", "helium", "solana-devnet"}
    assert all("chainId" not in entry for entry in payload["ton"])


# =============================================================================
# argument parsing
# =============================================================================


def test_parse_options_defaults():
    options = parse_options(["-a", ADDRESS_A])
    assert options.addresses == (ADDRESS_A,)
    assert options.blocks >= 1
    assert options.include_tokens is True


def test_parse_options_address_list_and_flags():
    options = parse_options(["-A", f"{ADDRESS_A},{ADDRESS_B}", "-n", "base", "-b", "10", "--no-tokens", "--json"])
    assert options.addresses == (ADDRESS_A, ADDRESS_B)
    assert options.network == "base"
    assert options.blocks == 10
    assert options.include_tokens is False
    assert options.json is True


def test_profile_network_applies_only_without_explicit_network(tmp_path):
    config = tmp_path / "cfg.json"
    config.write_text(json.dumps({"profiles": {"ops": {"address": ADDRESS_A, "network": "arbitrum"}}}))

    assert parse_options(["-p", "ops", "--config", str(config)]).network == "arbitrum"
    assert parse_options(["-p", "ops", "--config", str(config), "-n", "base"]).network == "base"


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["-a", ADDRESS_A, "-b", "0"],
        ["-a", ADDRESS_A, "-b", "many"],
        ["-a", ADDRESS_A, "--timeout", "0"],
        ["-a", ADDRESS_A, "--bogus"],
    ],
)
def test_parse_options_rejects_bad_arguments(argv):
    with pytest.raises(InvalidArgumentError):
        parse_options(argv)


def test_main_reports_usage_errors_as_json(capsys):
    assert main(["--json", "-b", "0", "-a", ADDRESS_A]) == 1
    envelope = json.loads(capsys.readouterr().out)
    assert envelope["code"] == "invalid_argument"
    assert envelope["exitCode"] == 1


def test_main_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert "balance-diff" in capsys.readouterr().out
