"""Shared fixtures for KeyCompass tests."""

import random
from concurrent.futures import Future

import pytest

from utils.locator import (
    Coordinates,
    DeviceRecord,
    DeviceRegistry,
    LocationProvider,
    SignalSource,
    SourceUnavailable,
)


class ManualSchedule:
    """Handle returned by ManualScheduler.call_every."""

    def __init__(self, scheduler, interval, callback):
        self.scheduler = scheduler
        self.interval = interval
        self.callback = callback
        self.next_due = scheduler.now + interval
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by advance() instead of wall-clock time."""

    def __init__(self):
        self.now = 0.0
        self.schedules = []

    def call_every(self, interval, callback):
        schedule = ManualSchedule(self, interval, callback)
        self.schedules.append(schedule)
        return schedule

    @property
    def active(self):
        return [s for s in self.schedules if not s.cancelled]

    def advance(self, seconds):
        """Move time forward, firing every callback that falls due."""
        target = self.now + seconds
        while True:
            due = [s for s in self.active if s.next_due <= target]
            if not due:
                break
            schedule = min(due, key=lambda s: s.next_due)
            self.now = schedule.next_due
            schedule.next_due += schedule.interval
            schedule.callback()
        self.now = target


class ScriptedSignalSource(SignalSource):
    """Signal source returning queued readings; None means unavailable."""

    def __init__(self, readings=None, default=-60):
        self.readings = list(readings or [])
        self.default = default
        self.read_count = 0

    def is_available(self):
        return not self.readings or self.readings[0] is not None

    def read(self):
        self.read_count += 1
        value = self.readings.pop(0) if self.readings else self.default
        if value is None:
            raise SourceUnavailable('scripted outage')
        return value


class ControlledLocationProvider(LocationProvider):
    """Location provider whose futures are resolved by the test."""

    def __init__(self):
        self.pending = []

    def request_location(self):
        future = Future()
        self.pending.append(future)
        return future

    def resolve_all(self, coordinates):
        pending, self.pending = self.pending, []
        for future in pending:
            future.set_result(coordinates)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def registry():
    registry = DeviceRegistry()
    registry.add_device(DeviceRecord(id='keys', name='My Keys', battery_level=75))
    registry.add_device(DeviceRecord(id='wallet', name='Wallet', battery_level=40))
    return registry


@pytest.fixture
def home():
    return Coordinates(37.7749, -122.4194)


@pytest.fixture
def rng():
    return random.Random(1234)
