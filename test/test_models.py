"""Tests for the shared data models."""

import logging

import pytest

from union_bridge_bot.models import (
    LATENCY_WINDOW,
    RunningStatistics,
    SubmissionResult,
    SubmissionStatus,
    TransferRequest,
)
from union_bridge_bot.observer import LoggingObserver

from conftest import SENDER


class TestRunningStatistics:

    def test_starts_empty(self, stats):
        snapshot = stats.snapshot()

        assert (snapshot['succeeded'], snapshot['failed'], snapshot['pending']) == (0, 0, 0)
        assert snapshot['latencies'] == [0] * LATENCY_WINDOW

    def test_latency_window_is_bounded(self, stats):
        for ms in range(1, LATENCY_WINDOW + 6):
            stats.begin()
            stats.succeed(ms)

        assert len(stats.latencies) == LATENCY_WINDOW
        assert stats.latencies[0] == 6
        assert stats.latencies[-1] == LATENCY_WINDOW + 5

    def test_release_without_pending_is_an_error(self, stats):
        with pytest.raises(RuntimeError, match="No pending submission"):
            stats.fail()
        assert stats.failed == 0


class TestSubmissionResult:

    def test_failed_requires_reason(self):
        with pytest.raises(ValueError, match="failure_reason"):
            SubmissionResult(status=SubmissionStatus.FAILED)

    def test_confirmed_rejects_reason(self):
        with pytest.raises(ValueError, match="failure_reason"):
            SubmissionResult(status=SubmissionStatus.CONFIRMED, failure_reason="boom")

    def test_status_values(self):
        assert SubmissionStatus.CONFIRMED == "Confirmed"
        assert SubmissionStatus.FAILED == "Failed"


@pytest.mark.parametrize("amount", [0, -1])
def test_transfer_amount_must_be_positive(amount):
    with pytest.raises(ValueError, match="amount"):
        TransferRequest(sender=SENDER, channel_id=8, amount=amount, destination=SENDER)


def test_logging_observer_levels(caplog):
    observer = LoggingObserver()

    with caplog.at_level(logging.DEBUG, logger="union_bridge_bot.observer"):
        observer.on_log_event('warn', "slow down")
        observer.on_log_event('success', "done")
        observer.on_status_change(RunningStatistics(succeeded=2))

    levels = [(r.levelno, r.getMessage()) for r in caplog.records]
    assert (logging.WARNING, "[!] slow down") in levels
    assert (logging.INFO, "[✓] done") in levels
    assert (logging.DEBUG, "Stats: 2 succeeded, 0 failed, 0 pending") in levels
