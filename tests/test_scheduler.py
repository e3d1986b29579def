"""Tests for the cycle scheduler."""
from unittest.mock import MagicMock

from alerts.errors import CycleError, CycleInProgressError
from models.alerts import CycleSummary
from service.scheduler import CycleScheduler


def test_cycle_job_runs_callbacks():
    summary = CycleSummary()
    orchestrator = MagicMock()
    orchestrator.run_cycle.return_value = summary
    scheduler = CycleScheduler(orchestrator)
    seen = []
    scheduler.on_cycle(seen.append)

    assert scheduler._cycle_job() is summary
    assert seen == [summary]


def test_overlapping_tick_skipped():
    orchestrator = MagicMock()
    orchestrator.run_cycle.side_effect = CycleInProgressError("busy")
    scheduler = CycleScheduler(orchestrator)
    assert scheduler._cycle_job() is None
    assert scheduler.skipped == 1


def test_failures_counted_and_reset():
    orchestrator = MagicMock()
    orchestrator.run_cycle.side_effect = [CycleError("db"), CycleError("db"), CycleSummary()]
    scheduler = CycleScheduler(orchestrator)
    scheduler._cycle_job()
    scheduler._cycle_job()
    assert scheduler._consecutive_failures == 2
    scheduler._cycle_job()
    assert scheduler._consecutive_failures == 0


def test_callback_error_does_not_propagate():
    orchestrator = MagicMock()
    orchestrator.run_cycle.return_value = CycleSummary()
    scheduler = CycleScheduler(orchestrator)
    scheduler.on_cycle(MagicMock(side_effect=RuntimeError("oops")))
    assert scheduler._cycle_job() is not None


def test_start_runs_first_cycle_and_stops():
    orchestrator = MagicMock()
    orchestrator.run_cycle.return_value = CycleSummary()
    scheduler = CycleScheduler(orchestrator, interval_minutes=60)
    scheduler.start()
    scheduler.stop()
    assert orchestrator.run_cycle.call_count >= 1
    assert scheduler._scheduler.jobs == []
