"""
Lightweight in-process cron scheduling for workflows.
One asyncio task per job sleeps until the next matching time and fires
the callback as its own task, so a slow workflow never delays other jobs.
"""
from __future__ import annotations

import asyncio
import functools
import inspect
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any, Awaitable, Callable, Dict, Protocol, Set, Union

from croniter import croniter

from miqro.core.exceptions import ScheduleBindError
from miqro.dispatcher import Dispatcher
from miqro.registry import WorkflowRegistry

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Union[Any, Awaitable[Any]]]


class CronTimer(Protocol):
    """Timer capability the binder registers jobs with."""

    def schedule(self, expression: str, callback: TimerCallback) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


@dataclass
class _CronJob:
    handle: int
    expression: str
    callback: TimerCallback
    task: asyncio.Task | None = None
    fired: int = 0


@dataclass
class AsyncioCronTimer:
    """
    croniter-backed timer running on the current event loop.

    Six-field expressions put seconds first (``sec min hour dom mon dow``).
    Jobs scheduled before :meth:`start` begin running once it is called.
    """

    tz: tzinfo | None = None
    seconds_first: bool = True
    _jobs: Dict[int, _CronJob] = field(default_factory=dict, init=False)
    _inflight: Set[asyncio.Task] = field(default_factory=set, init=False)
    _ids: Any = field(default_factory=lambda: itertools.count(1), init=False)
    _running: bool = field(default=False, init=False)

    @property
    def running(self) -> bool:
        return self._running

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self.tz)

    def _iter(self, expression: str, start: datetime) -> croniter:
        return croniter(expression, start, second_at_beginning=self.seconds_first)

    def next_fire_time(self, expression: str, after: datetime | None = None) -> datetime:
        return self._iter(expression, after or self.now()).get_next(datetime)

    def schedule(self, expression: str, callback: TimerCallback) -> int:
        expression = (expression or "").strip()
        try:
            self.next_fire_time(expression)
        except (ValueError, KeyError, TypeError) as exc:
            raise ScheduleBindError(f"Invalid cron expression '{expression}': {exc}") from exc

        job = _CronJob(handle=next(self._ids), expression=expression, callback=callback)
        self._jobs[job.handle] = job
        if self._running:
            job.task = asyncio.create_task(self._run_job(job))
        return job.handle

    def cancel(self, handle: int) -> None:
        job = self._jobs.pop(handle, None)
        if job and job.task:
            job.task.cancel()

    def start(self) -> None:
        """Start job loops as background tasks."""
        if self._running:
            return
        self._running = True
        for job in self._jobs.values():
            if job.task is None or job.task.done():
                job.task = asyncio.create_task(self._run_job(job))
        logger.info("Cron timer started with %d job(s)", len(self._jobs))

    async def stop(self) -> None:
        """Stop job loops. In-flight firings are dropped, not drained."""
        self._running = False
        tasks = [job.task for job in self._jobs.values() if job.task]
        tasks.extend(self._inflight)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for job in self._jobs.values():
            job.task = None
        self._inflight.clear()
        logger.info("Cron timer stopped")

    async def _run_job(self, job: _CronJob) -> None:
        last_fire = self.now()
        while True:
            next_fire = self.next_fire_time(job.expression, max(self.now(), last_fire))
            delay = (next_fire - self.now()).total_seconds()
            if delay > 0:
                await asyncio.sleep(delay)
            last_fire = next_fire
            task = asyncio.create_task(self._fire(job))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def _fire(self, job: _CronJob) -> None:
        job.fired += 1
        try:
            result = job.callback()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.exception("Cron job %s (%s) failed: %s", job.handle, job.expression, exc)


class SchedulerBinder:
    """Registers a timer job for every workflow that declares a schedule."""

    def __init__(self, registry: WorkflowRegistry, dispatcher: Dispatcher, timer: CronTimer):
        self.registry = registry
        self.dispatcher = dispatcher
        self.timer = timer
        self.handles: Dict[str, Any] = {}

    def bind(self) -> Dict[str, Any]:
        for wf in self.registry.scheduled():
            workflow_id = wf.config.id
            schedule = wf.config.schedule
            try:
                handle = self.timer.schedule(schedule, functools.partial(self.dispatcher.run_scheduled, workflow_id))
            except ScheduleBindError as exc:
                logger.error("Skipping schedule for workflow '%s': %s", workflow_id, exc)
                continue
            except Exception as exc:
                logger.exception("Skipping schedule for workflow '%s': %s", workflow_id, exc)
                continue
            self.handles[workflow_id] = handle
            logger.info("Scheduled workflow '%s' with cron: '%s'", workflow_id, schedule)
        return dict(self.handles)

    def unbind(self) -> None:
        for workflow_id, handle in list(self.handles.items()):
            self.timer.cancel(handle)
            self.handles.pop(workflow_id, None)
