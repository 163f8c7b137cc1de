"""Tests for budget_planner/core/debounce.py."""

import asyncio
import logging

from budget_planner.core.debounce import Debouncer


class _Counter:
    def __init__(self, fail: bool = False):
        self.runs = 0
        self.fail = fail

    async def __call__(self):
        self.runs += 1
        if self.fail:
            raise RuntimeError("save failed")


class TestDebouncer:
    async def test_runs_once_after_quiet_period(self):
        action = _Counter()
        debouncer = Debouncer(0.01, action)
        for _ in range(5):
            debouncer.schedule()
        assert debouncer.pending

        await asyncio.sleep(0.05)
        assert action.runs == 1
        assert not debouncer.pending

    async def test_each_schedule_restarts_the_window(self):
        action = _Counter()
        debouncer = Debouncer(0.05, action)
        debouncer.schedule()
        await asyncio.sleep(0.03)
        debouncer.schedule()
        await asyncio.sleep(0.03)
        assert action.runs == 0

        await asyncio.sleep(0.05)
        assert action.runs == 1

    async def test_cancel_prevents_run(self):
        action = _Counter()
        debouncer = Debouncer(0.01, action)
        debouncer.schedule()
        debouncer.cancel()
        await asyncio.sleep(0.03)
        assert action.runs == 0
        assert not debouncer.pending

    async def test_flush_runs_immediately(self):
        action = _Counter()
        debouncer = Debouncer(10, action)
        debouncer.schedule()
        await debouncer.flush()
        assert action.runs == 1
        assert not debouncer.pending

    async def test_flush_without_pending_does_nothing(self):
        action = _Counter()
        await Debouncer(10, action).flush()
        assert action.runs == 0

    async def test_action_failure_is_logged(self, caplog):
        debouncer = Debouncer(0, _Counter(fail=True))
        with caplog.at_level(logging.ERROR):
            debouncer.schedule()
            await asyncio.sleep(0.01)
        assert "Debounced action failed" in caplog.text
