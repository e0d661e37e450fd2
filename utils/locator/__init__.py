"""
Beacon proximity tracking package for KeyCompass.

Provides signal-to-distance estimation, proximity classification, the
shared device registry, and the periodic tracking loop that keeps the
active device's record up to date.
"""

from .constants import (
    PROXIMITY_CLOSE,
    PROXIMITY_MEDIUM,
    PROXIMITY_FAR,
    PROXIMITY_UNKNOWN,
    DEFAULT_TRACKING_INTERVAL,
)
from .distance import DistanceEstimator, classify_proximity, get_distance_estimator
from .exceptions import LocatorError, SourceUnavailable, LocationUnavailable, DeviceNotFound
from .geo import haversine_distance, offset_coordinates
from .location import (
    LocationProvider,
    StaticLocationProvider,
    ReportedLocationProvider,
    ThreadedLocationProvider,
)
from .models import Coordinates, DeviceRecord, ProximityTier, TrackingStatus
from .registry import (
    DeviceRegistry,
    get_device_registry,
    set_device_registry,
    reset_device_registry,
)
from .scheduler import RepeatingTimer, ThreadScheduler
from .signal_source import SignalSource, SimulatedSignalSource, ReportedSignalSource
from .tracker import (
    TrackingLoop,
    TrackingSession,
    simulate_offset,
    get_tracking_loop,
    set_tracking_loop,
    reset_tracking_loop,
)

__all__ = [
    # Models
    'Coordinates',
    'DeviceRecord',
    'ProximityTier',
    'TrackingStatus',

    # Errors
    'LocatorError',
    'SourceUnavailable',
    'LocationUnavailable',
    'DeviceNotFound',

    # Distance estimation
    'DistanceEstimator',
    'classify_proximity',
    'get_distance_estimator',

    # Geo
    'haversine_distance',
    'offset_coordinates',

    # Signal sources
    'SignalSource',
    'SimulatedSignalSource',
    'ReportedSignalSource',

    # Location providers
    'LocationProvider',
    'StaticLocationProvider',
    'ReportedLocationProvider',
    'ThreadedLocationProvider',

    # Registry
    'DeviceRegistry',
    'get_device_registry',
    'set_device_registry',
    'reset_device_registry',

    # Tracking
    'TrackingLoop',
    'TrackingSession',
    'RepeatingTimer',
    'ThreadScheduler',
    'simulate_offset',
    'get_tracking_loop',
    'set_tracking_loop',
    'reset_tracking_loop',

    # Constants
    'PROXIMITY_CLOSE',
    'PROXIMITY_MEDIUM',
    'PROXIMITY_FAR',
    'PROXIMITY_UNKNOWN',
    'DEFAULT_TRACKING_INTERVAL',
]
