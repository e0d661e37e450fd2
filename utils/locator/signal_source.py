"""
Signal sources for beacon tracking.

A signal source hands out one signal-strength reading per call. The
simulated source stands in for radio hardware; the reported source relays
readings measured by a client and pushed over the API.
"""

from __future__ import annotations

import logging
import math
import random
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .constants import (
    SIGNAL_WINDOW_LOW,
    SIGNAL_WINDOW_HIGH,
    SIGNAL_MAX_VALID,
    DEFAULT_SIGNAL_MAX_AGE,
)
from .distance import DistanceEstimator, get_distance_estimator
from .exceptions import SourceUnavailable

logger = logging.getLogger('keycompass.signal')


class SignalSource(ABC):
    """Produces signal-strength readings on demand."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return whether a reading can be taken right now."""

    @abstractmethod
    def read(self) -> float:
        """
        Take one signal-strength reading.

        Raises:
            SourceUnavailable: If is_available() is False.
        """

    def estimate_distance(self, estimator: Optional[DistanceEstimator] = None) -> float:
        """
        Take a one-off reading and convert it to meters.

        Used by pairing and connection flows that need a single estimate
        outside the tracking loop.

        Raises:
            SourceUnavailable: If no reading can be taken.
        """
        estimator = estimator or get_distance_estimator()
        return estimator.estimate(self.read())


class SimulatedSignalSource(SignalSource):
    """
    Simulated beacon producing uniformly random readings.

    Readings are whole numbers across the operating window. The random
    generator is injectable so tests can seed it.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        low: int = SIGNAL_WINDOW_LOW,
        high: int = SIGNAL_WINDOW_HIGH,
    ):
        if low > high:
            raise ValueError('Signal range low bound must not exceed high bound')
        self._rng = rng or random.Random()
        self._low = low
        self._high = high
        self._available = True
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        return self._available

    def set_available(self, available: bool) -> None:
        """Simulate the beacon going in or out of range."""
        self._available = available
        logger.debug(f"Simulated signal source available={available}")

    def read(self) -> float:
        with self._lock:
            if not self._available:
                raise SourceUnavailable('Simulated beacon is out of range')
            return self._rng.randint(self._low, self._high)


class ReportedSignalSource(SignalSource):
    """
    Signal source fed by client reports.

    Each report replaces the previous reading. A reading older than
    max_age_seconds is treated as lost, which makes the source unavailable
    until the next report arrives.
    """

    def __init__(self, max_age_seconds: float = DEFAULT_SIGNAL_MAX_AGE):
        self.max_age_seconds = max_age_seconds
        self._reading: Optional[tuple[datetime, float]] = None
        self._lock = threading.Lock()

    def report(self, rssi: float, timestamp: Optional[datetime] = None) -> None:
        """
        Store a reading measured by the client.

        Args:
            rssi: Signal strength reading.
            timestamp: When it was measured (defaults to now).

        Raises:
            ValueError: If the reading is not a plausible signal strength.
        """
        rssi = float(rssi)
        if not math.isfinite(rssi):
            raise ValueError(f'Signal strength must be a finite number: {rssi}')
        if rssi > SIGNAL_MAX_VALID:
            raise ValueError(f'Signal strength must be <= {SIGNAL_MAX_VALID}: {rssi}')

        with self._lock:
            self._reading = (timestamp or datetime.now(), rssi)

    def clear(self) -> None:
        with self._lock:
            self._reading = None

    def _fresh_reading(self) -> Optional[float]:
        if self._reading is None:
            return None
        timestamp, rssi = self._reading
        age = (datetime.now() - timestamp).total_seconds()
        if age > self.max_age_seconds:
            return None
        return rssi

    def is_available(self) -> bool:
        with self._lock:
            return self._fresh_reading() is not None

    def read(self) -> float:
        with self._lock:
            rssi = self._fresh_reading()
        if rssi is None:
            raise SourceUnavailable('No recent signal report')
        return rssi
