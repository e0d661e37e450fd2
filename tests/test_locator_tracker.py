"""Unit tests for the tracking loop lifecycle and tick behavior."""

import math
import random

import pytest

from utils.locator.exceptions import DeviceNotFound, LocationUnavailable
from utils.locator.location import ReportedLocationProvider, StaticLocationProvider
from utils.locator.models import Coordinates, ProximityTier
from utils.locator.tracker import TrackingLoop, simulate_offset

from conftest import ControlledLocationProvider, ScriptedSignalSource


INTERVAL = 2.0


def _near(a, b, tolerance):
    return abs(a.latitude - b.latitude) <= tolerance and abs(a.longitude - b.longitude) <= tolerance


def _invariant_holds(device):
    return (device.distance_meters is not None) == (device.proximity != ProximityTier.UNKNOWN)


@pytest.fixture
def signal():
    return ScriptedSignalSource(default=-30)


@pytest.fixture
def make_loop(registry, scheduler, rng):
    """Build a TrackingLoop wired to the manual scheduler."""
    def _make(signal_source, location_provider):
        return TrackingLoop(
            registry=registry,
            signal_source=signal_source,
            location_provider=location_provider,
            scheduler=scheduler,
            rng=rng,
            interval=INTERVAL,
        )
    return _make


@pytest.fixture
def loop(make_loop, signal, home):
    return make_loop(signal, StaticLocationProvider(home))


class TestTrackingLifecycle:
    """Tests for start/stop/restart semantics."""

    def test_initially_idle(self, loop, scheduler):
        assert loop.is_tracking is False
        assert loop.device_id is None
        assert scheduler.schedules == []

    def test_start_arms_single_schedule(self, loop, scheduler):
        loop.start('keys')
        assert loop.is_tracking is True
        assert loop.device_id == 'keys'
        assert len(scheduler.active) == 1
        assert scheduler.active[0].interval == INTERVAL

    def test_start_requests_location_immediately(self, loop, home):
        loop.start('keys')
        assert loop.status().user_location == home

    def test_no_tick_before_first_interval(self, loop, registry, signal):
        loop.start('keys')
        assert signal.read_count == 0
        assert registry.get_device('keys').proximity == ProximityTier.UNKNOWN

    def test_start_unknown_device_raises(self, loop, scheduler):
        with pytest.raises(DeviceNotFound):
            loop.start('nope')
        assert loop.is_tracking is False
        assert scheduler.schedules == []

    def test_start_unknown_device_keeps_current_session(self, loop, scheduler):
        loop.start('keys')
        with pytest.raises(DeviceNotFound):
            loop.start('nope')
        assert loop.device_id == 'keys'
        assert len(scheduler.active) == 1

    def test_restart_same_device_replaces_schedule(self, loop, scheduler):
        loop.start('keys')
        first = scheduler.active[0]
        loop.start('keys')
        assert first.cancelled is True
        assert len(scheduler.active) == 1
        assert scheduler.active[0] is not first

    def test_switching_devices_leaves_one_schedule(self, loop, registry, scheduler):
        loop.start('keys')
        scheduler.advance(INTERVAL)
        keys_snapshot = registry.get_device('keys')

        loop.start('wallet')
        assert len(scheduler.active) == 1
        assert loop.device_id == 'wallet'

        scheduler.advance(INTERVAL * 5)
        assert registry.get_device('keys') == keys_snapshot
        assert registry.get_device('wallet').proximity != ProximityTier.UNKNOWN

    def test_cancelled_timer_callback_does_nothing(self, loop, registry, scheduler):
        loop.start('keys')
        old_schedule = scheduler.active[0]
        loop.start('wallet')
        keys_snapshot = registry.get_device('keys')

        old_schedule.callback()

        assert registry.get_device('keys') == keys_snapshot

    def test_stop_twice_is_noop(self, loop, registry, scheduler, signal):
        loop.start('keys')
        scheduler.advance(INTERVAL)

        loop.stop()
        loop.stop()

        assert loop.is_tracking is False
        assert scheduler.active == []

        snapshot = registry.get_device('keys')
        reads = signal.read_count
        scheduler.advance(INTERVAL * 10)
        assert registry.get_device('keys') == snapshot
        assert signal.read_count == reads

    def test_stop_when_idle(self, loop):
        loop.stop()
        assert loop.is_tracking is False

    def test_tick_when_idle_returns_false(self, loop):
        assert loop.tick() is False

    def test_removed_device_stops_loop(self, loop, registry, scheduler):
        loop.start('keys')
        registry.remove_device('keys')
        scheduler.advance(INTERVAL)
        assert loop.is_tracking is False
        assert scheduler.active == []

    def test_status(self, loop, scheduler):
        assert loop.status().is_tracking is False
        loop.start('keys')
        scheduler.advance(INTERVAL * 3)
        status = loop.status()
        assert status.is_tracking is True
        assert status.device_id == 'keys'
        assert status.tick_count == 3
        assert status.last_signal_strength == -30

        data = status.to_dict()
        assert data['device_id'] == 'keys'
        assert data['interval_seconds'] == INTERVAL
        assert data['user_location'] is not None

    def test_invalid_interval(self, registry, signal, home):
        with pytest.raises(ValueError):
            TrackingLoop(registry, signal, StaticLocationProvider(home), interval=0)


class TestTrackingTicks:
    """Tests for what each tick writes to the registry."""

    def test_tick_writes_proximity_and_location(self, loop, registry, scheduler, home):
        loop.start('keys')
        scheduler.advance(INTERVAL)

        device = registry.get_device('keys')
        assert device.proximity == ProximityTier.CLOSE
        assert device.distance_meters == pytest.approx(0.5)
        assert device.last_seen is not None
        # close tier: drift at most 0.001 * 0.2 degrees per axis
        assert _near(device.last_location, home, 0.0002 + 1e-12)

    def test_invariant_holds_after_every_tick(self, make_loop, registry, scheduler, home):
        signal = ScriptedSignalSource([-30, -60, None, -95, -45, None, -70])
        loop = make_loop(signal, StaticLocationProvider(home))
        loop.start('keys')
        for _ in range(7):
            scheduler.advance(INTERVAL)
            assert _invariant_holds(registry.get_device('keys'))

    def test_tiers_follow_signal(self, make_loop, registry, scheduler, home):
        signal = ScriptedSignalSource([-30, -45, -100])
        loop = make_loop(signal, StaticLocationProvider(home))
        loop.start('keys')

        expected = [ProximityTier.CLOSE, ProximityTier.MEDIUM, ProximityTier.FAR]
        for tier in expected:
            scheduler.advance(INTERVAL)
            assert registry.get_device('keys').proximity == tier

    def test_source_unavailable_skips_tick(self, make_loop, registry, scheduler, home):
        signal = ScriptedSignalSource([-30, None, -100])
        loop = make_loop(signal, StaticLocationProvider(home))
        loop.start('keys')

        scheduler.advance(INTERVAL)
        first = registry.get_device('keys')

        scheduler.advance(INTERVAL)
        lost = registry.get_device('keys')
        assert loop.is_tracking is True
        assert lost.proximity == ProximityTier.UNKNOWN
        assert lost.distance_meters is None
        assert lost.last_seen == first.last_seen
        assert lost.last_location == first.last_location
        assert loop.status().skipped_ticks == 1

        scheduler.advance(INTERVAL)
        recovered = registry.get_device('keys')
        assert recovered.proximity == ProximityTier.FAR
        assert recovered.last_seen >= first.last_seen

    def test_without_user_location_only_proximity_written(self, make_loop, registry, scheduler, signal):
        provider = ControlledLocationProvider()
        loop = make_loop(signal, provider)
        loop.start('keys')
        scheduler.advance(INTERVAL)

        device = registry.get_device('keys')
        assert device.proximity == ProximityTier.CLOSE
        assert device.last_location is None
        assert device.last_seen is None

    def test_location_refreshed_every_tick(self, make_loop, registry, scheduler, signal):
        provider = ReportedLocationProvider()
        provider.report(37.0, -122.0)
        loop = make_loop(signal, provider)
        loop.start('keys')

        scheduler.advance(INTERVAL)
        assert _near(registry.get_device('keys').last_location, Coordinates(37.0, -122.0), 0.001)

        provider.report(48.85, 2.35)
        scheduler.advance(INTERVAL)
        assert _near(registry.get_device('keys').last_location, Coordinates(48.85, 2.35), 0.001)

    def test_location_failure_keeps_cached_coordinate(self, make_loop, scheduler, signal, home):
        provider = ControlledLocationProvider()
        loop = make_loop(signal, provider)
        loop.start('keys')
        provider.resolve_all(home)

        scheduler.advance(INTERVAL)
        for future in provider.pending:
            future.set_exception(LocationUnavailable('permission denied'))
        provider.pending = []

        status = loop.status()
        assert status.user_location == home
        assert status.location_failures == 1
        assert loop.is_tracking is True

    def test_slow_location_applied_when_resolved(self, make_loop, registry, scheduler, signal, home):
        provider = ControlledLocationProvider()
        loop = make_loop(signal, provider)
        loop.start('keys')

        scheduler.advance(INTERVAL)
        assert registry.get_device('keys').last_location is None

        provider.resolve_all(home)
        scheduler.advance(INTERVAL)
        assert registry.get_device('keys').last_location is not None

    def test_out_of_order_resolution_keeps_newest(self, make_loop, scheduler, signal):
        provider = ControlledLocationProvider()
        loop = make_loop(signal, provider)
        loop.start('keys')
        scheduler.advance(INTERVAL)

        older, newer = provider.pending
        newer.set_result(Coordinates(2.0, 2.0))
        older.set_result(Coordinates(1.0, 1.0))

        assert loop.status().user_location == Coordinates(2.0, 2.0)

    def test_location_resolving_after_stop_is_ignored(self, make_loop, scheduler, signal, home):
        provider = ControlledLocationProvider()
        loop = make_loop(signal, provider)
        loop.start('keys')
        loop.stop()

        provider.resolve_all(home)

        assert loop.status().user_location is None


class TestSimulatedOffset:
    """Tests for the tier-scaled position drift."""

    @staticmethod
    def _mean_magnitude(tier, seed=7, samples=500):
        rng = random.Random(seed)
        origin = Coordinates(0.0, 0.0)
        total = 0.0
        for _ in range(samples):
            point = simulate_offset(origin, tier, rng)
            total += math.hypot(point.latitude, point.longitude)
        return total / samples

    def test_close_smaller_than_far(self):
        assert self._mean_magnitude(ProximityTier.CLOSE) < self._mean_magnitude(ProximityTier.FAR)

    def test_tier_ordering(self):
        close = self._mean_magnitude(ProximityTier.CLOSE)
        medium = self._mean_magnitude(ProximityTier.MEDIUM)
        far = self._mean_magnitude(ProximityTier.FAR)
        assert close < medium < far

    def test_unknown_uses_full_span(self):
        assert self._mean_magnitude(ProximityTier.UNKNOWN) == pytest.approx(
            self._mean_magnitude(ProximityTier.FAR)
        )

    def test_offset_bounded(self):
        rng = random.Random(3)
        origin = Coordinates(10.0, 20.0)
        for _ in range(200):
            point = simulate_offset(origin, ProximityTier.FAR, rng)
            assert _near(point, origin, 0.001 + 1e-9)

    def test_seed_is_deterministic(self):
        origin = Coordinates(10.0, 20.0)
        first = simulate_offset(origin, ProximityTier.MEDIUM, random.Random(99))
        second = simulate_offset(origin, ProximityTier.MEDIUM, random.Random(99))
        assert first == second
