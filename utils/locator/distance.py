"""
Distance estimation for paired beacons.

Maps signal strength to an approximate distance and classifies that
distance into a proximity tier.
"""

from __future__ import annotations

from typing import Optional

from .constants import (
    SIGNAL_WINDOW_LOW,
    SIGNAL_WINDOW_HIGH,
    DISTANCE_MIN_METERS,
    DISTANCE_MAX_METERS,
    PROXIMITY_CLOSE_MAX_METERS,
    PROXIMITY_MEDIUM_MAX_METERS,
)
from .models import ProximityTier


class DistanceEstimator:
    """
    Estimates distance to a beacon from its signal strength.

    The model is a straight line: readings are clamped to the operating
    window, normalized so the strongest reading is 1.0, and mapped inversely
    onto [min_distance, max_distance]. It is monotonic and deterministic but
    not physically calibrated, so treat results as a coarse hint.
    """

    def __init__(
        self,
        window_low: float = SIGNAL_WINDOW_LOW,
        window_high: float = SIGNAL_WINDOW_HIGH,
        min_distance: float = DISTANCE_MIN_METERS,
        max_distance: float = DISTANCE_MAX_METERS,
        close_max: float = PROXIMITY_CLOSE_MAX_METERS,
        medium_max: float = PROXIMITY_MEDIUM_MAX_METERS,
    ):
        """
        Initialize the distance estimator.

        Args:
            window_low: Weakest usable signal reading.
            window_high: Strongest usable signal reading.
            min_distance: Distance reported at the strongest reading (meters).
            max_distance: Distance reported at the weakest reading (meters).
            close_max: Largest distance still classified as close.
            medium_max: Largest distance still classified as medium.
        """
        if window_low >= window_high:
            raise ValueError('Signal window low bound must be below high bound')
        if not 0 <= min_distance < max_distance:
            raise ValueError('Distance bounds must satisfy 0 <= min < max')
        if not 0 <= close_max < medium_max:
            raise ValueError('Proximity thresholds must satisfy 0 <= close < medium')

        self.window_low = window_low
        self.window_high = window_high
        self.min_distance = min_distance
        self.max_distance = max_distance
        self.close_max = close_max
        self.medium_max = medium_max

    def normalize(self, signal_strength: float) -> float:
        """
        Clamp a reading to the operating window and scale it to [0, 1].

        Args:
            signal_strength: Raw signal reading.

        Returns:
            0.0 for the weakest reading, 1.0 for the strongest.
        """
        clamped = min(max(signal_strength, self.window_low), self.window_high)
        return (clamped - self.window_low) / (self.window_high - self.window_low)

    def estimate(self, signal_strength: float) -> float:
        """
        Estimate distance in meters for a signal reading.

        Formula: d = min + (1 - normalized) * (max - min)

        Args:
            signal_strength: Raw signal reading.

        Returns:
            Estimated distance, always within [min_distance, max_distance].
        """
        normalized = self.normalize(signal_strength)
        return self.min_distance + (1 - normalized) * (self.max_distance - self.min_distance)

    def classify(self, distance_m: float) -> ProximityTier:
        """
        Classify an estimated distance into a proximity tier.

        Boundaries are inclusive on the lower tier: exactly 5m is close and
        exactly 20m is medium. UNKNOWN is never returned here; callers use it
        when they have no distance at all.

        Args:
            distance_m: Estimated distance in meters.

        Returns:
            CLOSE, MEDIUM or FAR.
        """
        if distance_m <= self.close_max:
            return ProximityTier.CLOSE
        elif distance_m <= self.medium_max:
            return ProximityTier.MEDIUM
        else:
            return ProximityTier.FAR

    def estimate_proximity(self, signal_strength: float) -> tuple[float, ProximityTier]:
        """Estimate distance and classify it in one step."""
        distance = self.estimate(signal_strength)
        return distance, self.classify(distance)


def classify_proximity(distance_m: Optional[float]) -> ProximityTier:
    """
    Classify a distance with the default thresholds.

    Returns UNKNOWN when no distance is available.
    """
    if distance_m is None:
        return ProximityTier.UNKNOWN
    return get_distance_estimator().classify(distance_m)


# Module-level instance for convenience
_default_estimator: Optional[DistanceEstimator] = None


def get_distance_estimator() -> DistanceEstimator:
    """Get or create the default distance estimator instance."""
    global _default_estimator
    if _default_estimator is None:
        _default_estimator = DistanceEstimator()
    return _default_estimator
