"""
Periodic proximity tracking for a single device.

Each tick fetches a fresh user location and a fresh signal reading,
estimates distance and tier, and commits the results to the registry.
"""

from __future__ import annotations

import logging
import random
import threading
from concurrent.futures import Future
from datetime import datetime
from functools import partial
from typing import Any, Optional

from .constants import (
    DEFAULT_TRACKING_INTERVAL,
    OFFSET_MULTIPLIERS,
    SIMULATED_OFFSET_SPAN_DEGREES,
)
from .distance import DistanceEstimator, get_distance_estimator
from .exceptions import DeviceNotFound, LocationUnavailable, SourceUnavailable
from .geo import offset_coordinates
from .location import LocationProvider, ReportedLocationProvider
from .models import Coordinates, ProximityTier, TrackingStatus
from .registry import DeviceRegistry, get_device_registry
from .scheduler import ThreadScheduler
from .signal_source import SignalSource, SimulatedSignalSource

logger = logging.getLogger('keycompass.tracker')


def simulate_offset(
    origin: Coordinates,
    proximity: ProximityTier,
    rng: random.Random,
) -> Coordinates:
    """
    Place a device at a random point near the user.

    The drift per axis is uniform in +/- half the offset span, scaled down
    for closer tiers.

    Args:
        origin: The user's position.
        proximity: Current tier of the tracked device.
        rng: Noise generator.

    Returns:
        Simulated device position.
    """
    multiplier = OFFSET_MULTIPLIERS[str(proximity)]
    d_lat = (rng.random() - 0.5) * SIMULATED_OFFSET_SPAN_DEGREES * multiplier
    d_lon = (rng.random() - 0.5) * SIMULATED_OFFSET_SPAN_DEGREES * multiplier
    return offset_coordinates(origin, d_lat, d_lon)


class TrackingSession:
    """State for one running tracking loop bound to one device."""

    def __init__(self, device_id: str):
        self.device_id = device_id
        self.started_at = datetime.now()
        self.schedule: Optional[Any] = None
        self.user_location: Optional[Coordinates] = None
        self.last_signal_strength: Optional[float] = None
        self.tick_count = 0
        self.skipped_ticks = 0
        self.location_failures = 0
        self.last_error: Optional[str] = None

        # Location requests are numbered so a late answer never replaces a newer one
        self.location_requests = 0
        self.location_applied = 0


class TrackingLoop:
    """
    Tracks one device at a time.

    States are idle and running. start() always tears down any running
    session first, so at most one timer is ever live. The timer callback is
    bound to its session and does nothing once that session has ended.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        signal_source: SignalSource,
        location_provider: LocationProvider,
        estimator: Optional[DistanceEstimator] = None,
        scheduler: Optional[Any] = None,
        rng: Optional[random.Random] = None,
        interval: float = DEFAULT_TRACKING_INTERVAL,
    ):
        """
        Initialize the tracking loop.

        Args:
            registry: Store the loop writes tracking results into.
            signal_source: Where signal readings come from.
            location_provider: Where the user's location comes from.
            estimator: Distance model (defaults to the shared estimator).
            scheduler: Object with call_every(interval, callback) returning
                a handle with cancel(). Defaults to a thread scheduler.
            rng: Noise generator for simulated positions.
            interval: Seconds between ticks.
        """
        if interval <= 0:
            raise ValueError('Tracking interval must be positive')

        self._registry = registry
        self._signal_source = signal_source
        self._location_provider = location_provider
        self._estimator = estimator or get_distance_estimator()
        self._scheduler = scheduler or ThreadScheduler()
        self._rng = rng or random.Random()
        self._interval = interval
        self._session: Optional[TrackingSession] = None
        # Reentrant: already-resolved location futures run their callback inline
        self._lock = threading.RLock()

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    @property
    def signal_source(self) -> SignalSource:
        return self._signal_source

    @property
    def location_provider(self) -> LocationProvider:
        return self._location_provider

    @property
    def estimator(self) -> DistanceEstimator:
        return self._estimator

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_tracking(self) -> bool:
        return self._session is not None

    @property
    def device_id(self) -> Optional[str]:
        session = self._session
        return session.device_id if session else None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, device_id: str) -> None:
        """
        Start tracking a device, replacing any running session.

        Raises:
            DeviceNotFound: If the device is not in the registry.
        """
        with self._lock:
            if self._registry.get_device(device_id) is None:
                raise DeviceNotFound(device_id)

            self._stop_locked()

            session = TrackingSession(device_id)
            self._session = session
            self._request_location(session)
            session.schedule = self._scheduler.call_every(
                self._interval,
                partial(self._on_timer, session),
            )
            logger.info(f"Tracking started for {device_id} (interval {self._interval}s)")

    def stop(self) -> None:
        """Stop tracking. No-op when idle."""
        with self._lock:
            self._stop_locked()

    def _stop_locked(self) -> None:
        session = self._session
        if session is None:
            return

        self._session = None
        if session.schedule is not None:
            session.schedule.cancel()
            session.schedule = None
        logger.info(f"Tracking stopped for {session.device_id} after {session.tick_count} ticks")

    def shutdown(self) -> None:
        """Stop tracking and release the location provider."""
        self.stop()
        self._location_provider.shutdown()

    def status(self) -> TrackingStatus:
        with self._lock:
            session = self._session
            if session is None:
                return TrackingStatus(interval_seconds=self._interval)
            return TrackingStatus(
                is_tracking=True,
                device_id=session.device_id,
                interval_seconds=self._interval,
                started_at=session.started_at,
                user_location=session.user_location,
                last_signal_strength=session.last_signal_strength,
                tick_count=session.tick_count,
                skipped_ticks=session.skipped_ticks,
                location_failures=session.location_failures,
                last_error=session.last_error,
            )

    # -------------------------------------------------------------------------
    # Ticks
    # -------------------------------------------------------------------------

    def tick(self) -> bool:
        """
        Run one tracking iteration for the current session.

        Returns:
            True if the device record was updated, False otherwise.
        """
        with self._lock:
            if self._session is None:
                return False
            return self._tick_locked(self._session)

    def _on_timer(self, session: TrackingSession) -> None:
        with self._lock:
            if self._session is not session:
                return
            self._tick_locked(session)

    def _tick_locked(self, session: TrackingSession) -> bool:
        session.tick_count += 1
        self._request_location(session)

        try:
            signal_strength = self._signal_source.read()
        except SourceUnavailable as e:
            session.skipped_ticks += 1
            session.last_error = str(e)
            logger.debug(f"Tick skipped for {session.device_id}: {e}")
            return self._commit(session, ProximityTier.UNKNOWN, None, None)

        session.last_signal_strength = signal_strength
        distance, proximity = self._estimator.estimate_proximity(signal_strength)

        location = None
        if session.user_location is not None:
            location = simulate_offset(session.user_location, proximity, self._rng)

        logger.debug(
            f"Tick {session.tick_count} for {session.device_id}: "
            f"signal={signal_strength} distance={distance:.1f}m proximity={proximity}"
        )
        return self._commit(session, proximity, distance, location)

    def _commit(
        self,
        session: TrackingSession,
        proximity: ProximityTier,
        distance: Optional[float],
        location: Optional[Coordinates],
    ) -> bool:
        try:
            self._registry.apply_tracking_update(
                session.device_id,
                proximity,
                distance,
                location=location,
                seen_at=datetime.now(),
            )
        except DeviceNotFound:
            logger.warning(f"Tracked device {session.device_id} no longer exists, stopping")
            self._stop_locked()
            return False
        return True

    # -------------------------------------------------------------------------
    # Location
    # -------------------------------------------------------------------------

    def _request_location(self, session: TrackingSession) -> None:
        session.location_requests += 1
        future = self._location_provider.request_location()
        future.add_done_callback(partial(self._on_location, session, session.location_requests))

    def _on_location(self, session: TrackingSession, request_number: int, future: Future) -> None:
        if future.cancelled():
            return

        error = future.exception()
        with self._lock:
            if self._session is not session:
                return

            if error is not None:
                session.location_failures += 1
                session.last_error = str(error)
                if isinstance(error, LocationUnavailable):
                    logger.warning(f"Location unavailable, keeping last position: {error}")
                else:
                    logger.error(f"Location request failed: {error}")
                return

            if request_number <= session.location_applied:
                logger.debug(f"Discarding stale location response #{request_number}")
                return

            session.location_applied = request_number
            session.user_location = future.result()


# Module-level instance for shared access
_tracking_loop: Optional[TrackingLoop] = None


def get_tracking_loop() -> TrackingLoop:
    """Get or create the shared tracking loop."""
    global _tracking_loop
    if _tracking_loop is None:
        _tracking_loop = TrackingLoop(
            registry=get_device_registry(),
            signal_source=SimulatedSignalSource(),
            location_provider=ReportedLocationProvider(),
        )
    return _tracking_loop


def set_tracking_loop(loop: TrackingLoop) -> None:
    """Install a configured loop as the shared instance, stopping any previous one."""
    global _tracking_loop
    if _tracking_loop is not None and _tracking_loop is not loop:
        _tracking_loop.shutdown()
    _tracking_loop = loop


def reset_tracking_loop() -> None:
    """Stop and discard the shared tracking loop."""
    global _tracking_loop
    if _tracking_loop is not None:
        _tracking_loop.shutdown()
    _tracking_loop = None
