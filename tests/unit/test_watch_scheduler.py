"""
Tests for the watch-mode scheduler state machine and its exit codes.
"""

from typing import List

import pytest

from balance_diff.core.errors import ErrorCategory, RpcError
from balance_diff.core.models import ExitCode, PollResult
from balance_diff.services.thresholds import parse_threshold
from balance_diff.services.watch import WatchConfig, WatchScheduler, WatchState, WatchSummary

ETH = 10 ** 18
ADDRESS = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


class RecordingReporter:
    def __init__(self, on_poll=None):
        self.started: List[WatchConfig] = []
        self.polls: List[PollResult] = []
        self.ended: List[WatchSummary] = []
        self._on_poll = on_poll

    def watch_started(self, config):
        self.started.append(config)

    def poll(self, result):
        self.polls.append(result)
        if self._on_poll:
            self._on_poll(result)

    def watch_ended(self, summary):
        self.ended.append(summary)


class PollScript:
    """Each current_height() call starts a new poll; balances come from the script."""

    def __init__(self, steps):
        self.steps = steps
        self.index = -1

    def height(self):
        self.index += 1
        step = self.steps[min(self.index, len(self.steps) - 1)]
        if isinstance(step, Exception):
            raise step
        return 1000 + self.index * 10

    def balance(self, address, height):
        current, previous = self.steps[min(self.index, len(self.steps) - 1)]
        return current if height == 1000 + self.index * 10 else previous


def config(**overrides) -> WatchConfig:
    values = dict(address=ADDRESS, lookback=5, interval_s=0.01, count=3)
    values.update(overrides)
    return WatchConfig(**values)


@pytest.mark.asyncio
async def test_bounded_run_without_alerts_exits_zero(make_adapter):
    script = PollScript([(ETH, ETH)] * 3)
    reporter = RecordingReporter()
    scheduler = WatchScheduler(
        make_adapter(height=script.height, balance=script.balance),
        config(absolute=parse_threshold(">0.5")),
        reporter,
    )

    assert await scheduler.run() == ExitCode.OK
    assert scheduler.state is WatchState.EXHAUSTED
    assert [poll.sequence for poll in reporter.polls] == [1, 2, 3]
    assert len(reporter.started) == 1
    assert len(reporter.ended) == 1
    assert reporter.ended[0].reason == "exhausted"
    assert reporter.ended[0].polls == 3


@pytest.mark.asyncio
async def test_alert_on_third_poll_exits_one(make_adapter):
    script = PollScript([(ETH, ETH), (ETH, ETH), (2 * ETH, ETH)])
    reporter = RecordingReporter()
    scheduler = WatchScheduler(
        make_adapter(height=script.height, balance=script.balance),
        config(absolute=parse_threshold(">0.5")),
        reporter,
    )

    assert await scheduler.run() == ExitCode.DIFF
    assert [poll.alert.triggered for poll in reporter.polls] == [False, False, True]
    assert reporter.polls[2].alert.triggered_by == "absolute"
    assert reporter.ended[0].exit_code == ExitCode.DIFF


@pytest.mark.asyncio
async def test_since_last_tracks_previous_successful_poll(make_adapter):
    script = PollScript([(ETH, ETH), (ETH + 7, ETH), (ETH + 2, ETH)])
    reporter = RecordingReporter()
    scheduler = WatchScheduler(make_adapter(height=script.height, balance=script.balance), config(), reporter)

    await scheduler.run()
    assert [poll.since_last for poll in reporter.polls] == [None, 7, -5]


@pytest.mark.asyncio
async def test_exit_on_diff_stops_at_first_alert(make_adapter):
    script = PollScript([(ETH, ETH), (3 * ETH, ETH), (ETH, ETH)])
    reporter = RecordingReporter()
    scheduler = WatchScheduler(
        make_adapter(height=script.height, balance=script.balance),
        config(count=None, exit_on_diff=True, absolute=parse_threshold(">1")),
        reporter,
    )

    assert await scheduler.run() == ExitCode.DIFF
    assert scheduler.state is WatchState.DIFF_EXIT
    assert len(reporter.polls) == 2


@pytest.mark.asyncio
async def test_rpc_error_is_reported_and_run_continues(make_adapter):
    script = PollScript([RpcError("timeout", category=ErrorCategory.TIMEOUT), (ETH, ETH), (ETH, ETH)])
    reporter = RecordingReporter()
    scheduler = WatchScheduler(make_adapter(height=script.height, balance=script.balance), config(), reporter)

    assert await scheduler.run() == ExitCode.OK
    first = reporter.polls[0]
    assert not first.ok
    assert first.is_rpc_error is True
    assert reporter.polls[1].ok


@pytest.mark.asyncio
async def test_exit_on_error_with_rpc_failure_exits_two(make_adapter):
    script = PollScript([(ETH, ETH), RpcError("refused", category=ErrorCategory.NETWORK)])
    reporter = RecordingReporter()
    scheduler = WatchScheduler(
        make_adapter(height=script.height, balance=script.balance),
        config(count=None, exit_on_error=True),
        reporter,
    )

    assert await scheduler.run() == ExitCode.RPC_ERROR
    assert scheduler.state is WatchState.ERROR_EXIT
    assert reporter.ended[0].reason == "error_exit"


@pytest.mark.asyncio
async def test_exit_on_error_ignores_non_rpc_failures(make_adapter):
    script = PollScript([ValueError("bad data"), (ETH, ETH)])
    reporter = RecordingReporter()
    scheduler = WatchScheduler(
        make_adapter(height=script.height, balance=script.balance),
        config(count=2, exit_on_error=True),
        reporter,
    )

    assert await scheduler.run() == ExitCode.OK
    assert reporter.polls[0].is_rpc_error is False


@pytest.mark.asyncio
async def test_interrupt_finishes_in_flight_poll_and_summarises_once(make_adapter):
    script = PollScript([(ETH, ETH)] * 10)
    scheduler = None

    def interrupt_on_second(poll):
        if poll.sequence == 2:
            scheduler.interrupt()

    reporter = RecordingReporter(on_poll=interrupt_on_second)
    scheduler = WatchScheduler(
        make_adapter(height=script.height, balance=script.balance),
        config(count=None),
        reporter,
    )

    assert await scheduler.run() == ExitCode.INTERRUPTED
    assert scheduler.state is WatchState.INTERRUPTED
    assert len(reporter.polls) == 2

    scheduler.interrupt()
    scheduler.stop()
    assert len(reporter.ended) == 1
    assert reporter.ended[0].reason == "interrupted"
    assert reporter.ended[0].exit_code == ExitCode.INTERRUPTED


@pytest.mark.asyncio
async def test_programmatic_stop(make_adapter):
    script = PollScript([(ETH, ETH)] * 10)
    scheduler = None

    def stop_on_first(poll):
        scheduler.stop()

    reporter = RecordingReporter(on_poll=stop_on_first)
    scheduler = WatchScheduler(
        make_adapter(height=script.height, balance=script.balance),
        config(count=None, interval_s=60),
        reporter,
    )

    assert await scheduler.run() == ExitCode.OK
    assert scheduler.state is WatchState.STOPPED
    assert len(reporter.polls) == 1


@pytest.mark.asyncio
async def test_alert_hook_failures_do_not_stop_the_run(make_adapter):
    script = PollScript([(2 * ETH, ETH)] * 2)
    seen = []

    async def hook(poll):
        seen.append(poll.sequence)
        raise RuntimeError("webhook down")

    scheduler = WatchScheduler(
        make_adapter(height=script.height, balance=script.balance),
        config(count=2, absolute=parse_threshold(">0")),
        RecordingReporter(),
        on_alert=hook,
    )
    assert await scheduler.run() == ExitCode.DIFF
    assert seen == [1, 2]


class BrokenPipeReporter(RecordingReporter):
    def poll(self, result):
        super().poll(result)
        raise BrokenPipeError("stdout closed")


@pytest.mark.asyncio
async def test_reporter_failures_still_end_with_one_summary(make_adapter):
    script = PollScript([(ETH, ETH)] * 3)
    reporter = BrokenPipeReporter()
    scheduler = WatchScheduler(make_adapter(height=script.height, balance=script.balance), config(count=3), reporter)

    assert await scheduler.run() == ExitCode.OK
    assert scheduler.state is WatchState.EXHAUSTED
    assert len(reporter.polls) == 3
    assert len(reporter.ended) == 1
    assert reporter.ended[0].polls == 3


@pytest.mark.asyncio
async def test_summary_failure_does_not_escape(make_adapter):
    class ClosedStream(RecordingReporter):
        def watch_ended(self, summary):
            raise BrokenPipeError("stdout closed")

    scheduler = WatchScheduler(make_adapter(), config(count=1), ClosedStream())
    assert await scheduler.run() == ExitCode.OK
    assert scheduler.summary.reason == "exhausted"


@pytest.mark.asyncio
async def test_unexpected_failure_summarises_before_raising(make_adapter):
    reporter = RecordingReporter()
    scheduler = WatchScheduler(make_adapter(), config(count=2), reporter)

    async def explode(delay):
        raise ValueError("boom")

    # reporter and alert hooks are guarded; fail the wait between polls
    scheduler._sleep = explode
    with pytest.raises(ValueError):
        await scheduler.run()
    assert scheduler.state is WatchState.ERROR_EXIT
    assert len(reporter.ended) == 1
    assert reporter.ended[0].exit_code == ExitCode.RPC_ERROR


@pytest.mark.asyncio
async def test_scheduler_runs_once(make_adapter):
    scheduler = WatchScheduler(make_adapter(), config(count=1), RecordingReporter())
    await scheduler.run()
    with pytest.raises(RuntimeError):
        await scheduler.run()


def test_config_validation():
    with pytest.raises(ValueError):
        config(interval_s=0)
    with pytest.raises(ValueError):
        config(count=0)
    with pytest.raises(ValueError):
        config(lookback=0)
