"""
Pytest configuration and fixtures for the job scheduler tests.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List
from unittest.mock import AsyncMock, Mock

import pytest

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from services.scheduler.composer import ScheduleComposer
from services.scheduler.database import SchedulerDatabase
from services.scheduler.models import ScheduleRecord


NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)  # a Monday


class FakeTimer:
    """Timer stand-in that records its lifecycle and fires on demand."""

    def __init__(self, trigger, on_fire):
        self.trigger = trigger
        self.on_fire = on_fire
        self.repeating = isinstance(trigger, str)
        self.state = "idle"
        self.start_calls = 0
        self.stop_calls = 0

    @property
    def running(self):
        return self.state == "running"

    def start(self):
        self.start_calls += 1
        self.state = "running"

    def stop(self):
        self.stop_calls += 1
        self.state = "stopped"

    async def fire(self):
        if not self.repeating:
            self.state = "fired"
        await self.on_fire()


class FakeTimerFactory:
    def __init__(self):
        self.timers: List[FakeTimer] = []

    def __call__(self, trigger, on_fire):
        timer = FakeTimer(trigger, on_fire)
        self.timers.append(timer)
        return timer


class FakeStore:
    """In-memory schedule store with the same surface as SchedulerDatabase."""

    def __init__(self, records=None, initialized=True):
        self.records = {record.id: record for record in (records or [])}
        self.initialized = initialized
        self.destroyed = []
        self.subscriptions = {}

    def find_all(self):
        return list(self.records.values())

    def get(self, schedule_id):
        return self.records.get(schedule_id)

    def destroy(self, record):
        self.destroyed.append(record.id)
        return self.records.pop(record.id, None) is not None

    def subscribe(self, on_save, on_delete):
        token = len(self.subscriptions) + 1
        self.subscriptions[token] = (on_save, on_delete)
        return token

    def unsubscribe(self, token):
        self.subscriptions.pop(token, None)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_record():
    """Factory for schedule records; starts in the past and runs once by default."""
    def _make(schedule_id="sched_1", **overrides):
        data = {
            "id": schedule_id,
            "job_name": "cleanup",
            "params": None,
            "start_after": NOW - timedelta(hours=1),
            "repeat_minutes": None,
            "time_of_day": None,
            "days_of_week": None,
        }
        data.update(overrides)
        return ScheduleRecord(**data)
    return _make


@pytest.fixture
def timer_factory():
    return FakeTimerFactory()


@pytest.fixture
def mock_launcher():
    launcher = Mock()
    launcher.trigger = AsyncMock(return_value=True)
    return launcher


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def composer(timer_factory, mock_launcher, fake_store):
    return ScheduleComposer(timer_factory, mock_launcher, fake_store, clock=lambda: NOW)


@pytest.fixture
def test_db(tmp_path):
    """SQLite schedule database in a temporary directory."""
    return SchedulerDatabase(str(tmp_path / "scheduler.db"))
