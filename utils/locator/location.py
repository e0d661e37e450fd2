"""
User location providers.

Every provider returns a concurrent.futures.Future from request_location()
without blocking. The future resolves to Coordinates or fails with
LocationUnavailable.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from .constants import LOCATION_WORKER_THREADS
from .exceptions import LocationUnavailable
from .models import Coordinates

logger = logging.getLogger('keycompass.location')


def _resolved(coordinates: Coordinates) -> Future:
    future: Future = Future()
    future.set_result(coordinates)
    return future


def _failed(error: Exception) -> Future:
    future: Future = Future()
    future.set_exception(error)
    return future


class LocationProvider(ABC):
    """Supplies the user's current coordinates asynchronously."""

    @abstractmethod
    def request_location(self) -> Future:
        """Request the current location. Must return immediately."""

    def shutdown(self) -> None:
        """Release any resources held by the provider."""


class StaticLocationProvider(LocationProvider):
    """Always reports the same position."""

    def __init__(self, coordinates: Coordinates):
        self._coordinates = coordinates.validate()

    def request_location(self) -> Future:
        return _resolved(self._coordinates)


class ReportedLocationProvider(LocationProvider):
    """
    Location provider fed by client reports.

    The browser (or phone app) pushes its geolocation through the API;
    requests resolve to the latest report.
    """

    def __init__(self, initial: Optional[Coordinates] = None):
        self._coordinates = initial.validate() if initial else None
        self._lock = threading.Lock()

    def report(self, latitude: float, longitude: float) -> Coordinates:
        """
        Store the client's current position.

        Raises:
            ValueError: If the coordinates are out of range.
        """
        coordinates = Coordinates(float(latitude), float(longitude)).validate()
        with self._lock:
            self._coordinates = coordinates
        return coordinates

    def request_location(self) -> Future:
        with self._lock:
            coordinates = self._coordinates
        if coordinates is None:
            return _failed(LocationUnavailable('No location reported yet'))
        return _resolved(coordinates)


class ThreadedLocationProvider(LocationProvider):
    """
    Runs a blocking location lookup on a worker pool.

    Slow lookups resolve whenever they finish; the caller never waits.
    Any exception from the lookup is surfaced as LocationUnavailable.
    """

    def __init__(
        self,
        lookup: Callable[[], Coordinates],
        max_workers: int = LOCATION_WORKER_THREADS,
    ):
        self._lookup = lookup
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix='location-lookup',
        )

    def _run_lookup(self) -> Coordinates:
        try:
            return self._lookup().validate()
        except LocationUnavailable:
            raise
        except Exception as e:
            raise LocationUnavailable(str(e)) from e

    def request_location(self) -> Future:
        try:
            return self._executor.submit(self._run_lookup)
        except RuntimeError as e:
            # Executor already shut down
            return _failed(LocationUnavailable(str(e)))

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.debug("Location lookup pool shut down")
