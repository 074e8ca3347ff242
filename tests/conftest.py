import inspect
import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('LOG_LEVEL', 'DEBUG')

from miqro.config import Settings
from miqro.core.exceptions import ScheduleBindError


class FakeTimer:
    """Controllable stand-in for the cron timer."""

    def __init__(self):
        self.jobs = {}
        self.cancelled = []
        self.started = False
        self.stopped = False
        self.events = []

    def schedule(self, expression, callback):
        if expression == 'not a cron':
            raise ScheduleBindError(f"Invalid cron expression '{expression}'")
        handle = len(self.jobs) + 1
        self.jobs[handle] = (expression, callback)
        return handle

    def cancel(self, handle):
        self.cancelled.append(handle)
        self.events.append(("cancel", handle))

    def start(self):
        self.started = True

    async def stop(self):
        self.stopped = True
        self.events.append(("stop", None))

    async def fire(self, handle):
        result = self.jobs[handle][1]()
        if inspect.isawaitable(result):
            await result


@pytest.fixture
def fake_timer():
    return FakeTimer()


@pytest.fixture
def settings():
    return Settings(app_env='test', port=3000)
