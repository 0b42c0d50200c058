"""Shared fixtures: in-memory Redis, a controllable clock and test settings."""

import os

os.environ.setdefault("API_KEY", "test-key")
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("DISPATCHER_ENABLED", "false")

import fakeredis
import pytest

from remindme.reminders.store import ReminderQueue

T0 = 1_700_000_000


class FakeClock:
    """Wall clock that only moves when a test says so."""

    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def redis_client():
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())


@pytest.fixture
def queue(redis_client):
    return ReminderQueue(redis_client, key="test_reminder_queue")
