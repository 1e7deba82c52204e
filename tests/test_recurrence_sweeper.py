"""Tests for the background recurrence sweep."""
import asyncio
from datetime import datetime

import pytest

from taskmarket.config import settings
from taskmarket.services.recurrence_sweeper import RecurrenceSweeper
from taskmarket.tasks.celery_app import celery_app

NOW = datetime(2024, 3, 15, 12, 0, 0)


async def wait_for_iterations(sweeper, count):
    async def _wait():
        while sweeper.iterations < count:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_wait(), timeout=5)


@pytest.mark.asyncio
async def test_sweeper_resets_overdue_tasks(engine, test_campaign, employer):
    created = await engine.create_task(test_campaign.id, {"title": "Daily backup", "recurrence": "daily"}, employer)
    task_id = created.value
    await engine.toggle_recurring_completion(task_id, employer, now=NOW)

    sweeper = RecurrenceSweeper(engine, interval_seconds=0.01)
    sweeper.start()
    assert sweeper.running
    await wait_for_iterations(sweeper, 1)
    await sweeper.stop()

    assert not sweeper.running
    task = (await engine.get_task(task_id)).value
    assert task.is_recurring_completed is False


@pytest.mark.asyncio
async def test_sweeper_keeps_running_until_stopped(engine):
    sweeper = RecurrenceSweeper(engine, interval_seconds=0.01)
    sweeper.start()
    sweeper.start()
    await wait_for_iterations(sweeper, 3)
    await sweeper.stop()
    iterations = sweeper.iterations

    await asyncio.sleep(0.05)
    assert sweeper.iterations == iterations
    assert sweeper.last_report.failed == []


@pytest.mark.asyncio
async def test_sweeper_survives_failing_iteration(engine, monkeypatch):
    calls = []

    async def flaky(now=None):
        calls.append(now)
        if len(calls) == 1:
            raise RuntimeError("database unavailable")
        return await original(now)

    original = engine.sweep_due_recurring_tasks
    monkeypatch.setattr(engine, "sweep_due_recurring_tasks", flaky)

    sweeper = RecurrenceSweeper(engine, interval_seconds=0.01)
    sweeper.start()
    await wait_for_iterations(sweeper, 1)
    await sweeper.stop()

    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(engine):
    sweeper = RecurrenceSweeper(engine, interval_seconds=1)
    await sweeper.stop()
    assert not sweeper.running


def test_celery_beat_schedules_sweep():
    entry = celery_app.conf.beat_schedule["sweep-due-recurring-tasks"]
    assert entry["task"] == "taskmarket.tasks.recurrence.sweep_due_recurring_tasks"
    assert entry["schedule"] == settings.RECURRENCE_SWEEP_INTERVAL_SECONDS
