from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

import pytest

from miqro.core.exceptions import ScheduleBindError
from miqro.dispatcher import Dispatcher
from miqro.registry import WorkflowRegistry
from miqro.scheduler import AsyncioCronTimer, SchedulerBinder
from miqro.types import Workflow, WorkflowConfig


def _binder(workflows, timer):
    registry = WorkflowRegistry.from_workflows(workflows)
    return SchedulerBinder(registry, Dispatcher(registry), timer)


@pytest.mark.asyncio
async def test_scheduled_workflow_fires_once_with_cron_payload(fake_timer):
    seen = []
    wf = Workflow(WorkflowConfig(id="tick", schedule="* * * * *"), lambda payload, ctx: seen.append(payload))
    handles = _binder([wf], fake_timer).bind()

    await fake_timer.fire(handles["tick"])

    assert len(seen) == 1
    assert seen[0]["source"] == "cron"


def test_only_scheduled_workflows_are_bound(fake_timer):
    workflows = [
        Workflow(WorkflowConfig(id="hook"), lambda p, c: None),
        Workflow(WorkflowConfig(id="tick", schedule="*/5 * * * *"), lambda p, c: None),
    ]
    handles = _binder(workflows, fake_timer).bind()
    assert list(handles) == ["tick"]
    assert [expr for expr, _ in fake_timer.jobs.values()] == ["*/5 * * * *"]


def test_invalid_schedule_is_skipped_without_aborting(fake_timer, caplog):
    workflows = [
        Workflow(WorkflowConfig(id="bad", schedule="not a cron"), lambda p, c: None),
        Workflow(WorkflowConfig(id="good", schedule="* * * * *"), lambda p, c: None),
    ]
    with caplog.at_level(logging.ERROR, logger="miqro.scheduler"):
        handles = _binder(workflows, fake_timer).bind()
    assert list(handles) == ["good"]
    assert "bad" in caplog.text


@pytest.mark.asyncio
async def test_failing_scheduled_workflow_does_not_stop_others(fake_timer):
    seen = []

    def boom(payload, ctx):
        raise RuntimeError("nope")

    workflows = [
        Workflow(WorkflowConfig(id="boom", schedule="* * * * *"), boom),
        Workflow(WorkflowConfig(id="ok", schedule="* * * * *"), lambda p, c: seen.append(c.workflow_id)),
    ]
    handles = _binder(workflows, fake_timer).bind()
    await fake_timer.fire(handles["boom"])
    await fake_timer.fire(handles["boom"])
    await fake_timer.fire(handles["ok"])
    assert seen == ["ok"]


def test_unbind_cancels_handles(fake_timer):
    binder = _binder([Workflow(WorkflowConfig(id="t", schedule="* * * * *"), lambda p, c: None)], fake_timer)
    binder.bind()
    binder.unbind()
    assert fake_timer.cancelled == [1]
    assert binder.handles == {}


def test_asyncio_timer_rejects_invalid_expression():
    timer = AsyncioCronTimer()
    with pytest.raises(ScheduleBindError):
        timer.schedule("not a cron", lambda: None)
    with pytest.raises(ScheduleBindError):
        timer.schedule("", lambda: None)


def test_asyncio_timer_next_fire_time():
    timer = AsyncioCronTimer(tz=timezone.utc)
    start = datetime(2024, 1, 1, 12, 0, 30, tzinfo=timezone.utc)
    assert timer.next_fire_time("* * * * *", start) == datetime(2024, 1, 1, 12, 1, tzinfo=timezone.utc)
    assert timer.next_fire_time("0 0 * * *", start) == datetime(2024, 1, 2, tzinfo=timezone.utc)
    # six fields: seconds come first
    assert timer.next_fire_time("45 * * * * *", start) == datetime(2024, 1, 1, 12, 0, 45, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_asyncio_timer_fires_and_stops():
    fired = asyncio.Event()
    count = []

    async def callback():
        count.append(1)
        fired.set()

    timer = AsyncioCronTimer()
    handle = timer.schedule("* * * * * *", callback)
    timer.start()
    assert timer.running
    await asyncio.wait_for(fired.wait(), timeout=3)
    await timer.stop()
    assert not timer.running
    assert count
    timer.cancel(handle)


@pytest.mark.asyncio
async def test_asyncio_timer_callback_errors_are_logged(caplog):
    timer = AsyncioCronTimer()

    def boom():
        raise RuntimeError("callback failed")

    handle = timer.schedule("* * * * *", boom)
    with caplog.at_level(logging.ERROR, logger="miqro.scheduler"):
        await timer._fire(timer._jobs[handle])
    assert "callback failed" in caplog.text
    assert timer._jobs[handle].fired == 1


def test_app_shutdown_awaits_cron_job_tasks(settings):
    from fastapi.testclient import TestClient

    from miqro.server import create_app

    timer = AsyncioCronTimer()
    wf = Workflow(WorkflowConfig(id="tick", schedule="0 0 1 1 *"), lambda p, c: None)
    app = create_app([wf], settings=settings, timer=timer)
    with TestClient(app):
        task = timer._jobs[1].task
        assert task is not None
    assert task.done()
    assert timer._jobs == {}
    assert not timer.running
