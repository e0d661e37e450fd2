"""
Data models for beacon proximity tracking.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .constants import (
    BATTERY_LEVEL_MIN,
    BATTERY_LEVEL_MAX,
    PROXIMITY_CLOSE,
    PROXIMITY_MEDIUM,
    PROXIMITY_FAR,
    PROXIMITY_UNKNOWN,
)


class ProximityTier(str, Enum):
    """Discrete proximity classifications."""
    CLOSE = PROXIMITY_CLOSE      # <= 5m
    MEDIUM = PROXIMITY_MEDIUM    # 5-20m
    FAR = PROXIMITY_FAR          # > 20m
    UNKNOWN = PROXIMITY_UNKNOWN  # No usable sample

    def __str__(self) -> str:
        return self.value

    def display(self) -> dict:
        """Label, signal-bar level and hint text for presentation layers."""
        return _TIER_DISPLAY[self].copy()


_TIER_DISPLAY = {
    ProximityTier.CLOSE: {'label': 'Very Close', 'level': 3, 'message': "You're almost there!"},
    ProximityTier.MEDIUM: {'label': 'Nearby', 'level': 2, 'message': 'Getting closer...'},
    ProximityTier.FAR: {'label': 'Far', 'level': 1, 'message': 'Keep moving...'},
    ProximityTier.UNKNOWN: {'label': 'Unknown', 'level': 0, 'message': 'Signal lost'},
}


@dataclass(frozen=True)
class Coordinates:
    """A latitude/longitude pair in decimal degrees."""
    latitude: float
    longitude: float

    def validate(self) -> 'Coordinates':
        """Raise ValueError if the pair is outside the valid range."""
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f'Latitude out of range: {self.latitude}')
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f'Longitude out of range: {self.longitude}')
        return self

    def to_dict(self) -> dict:
        return {'latitude': self.latitude, 'longitude': self.longitude}


def check_proximity(proximity: ProximityTier, distance_meters: Optional[float]) -> None:
    """
    Validate a proximity/distance pair.

    A distance must be present exactly when the tier is known, and it can
    never be negative.

    Raises:
        ValueError: If the pair is inconsistent.
    """
    if proximity == ProximityTier.UNKNOWN:
        if distance_meters is not None:
            raise ValueError('Distance must be None when proximity is unknown')
        return

    if distance_meters is None:
        raise ValueError(f'Distance required for proximity {proximity}')
    if not math.isfinite(distance_meters):
        raise ValueError(f'Distance must be finite: {distance_meters}')
    if distance_meters < 0:
        raise ValueError(f'Distance cannot be negative: {distance_meters}')


@dataclass
class DeviceRecord:
    """
    A paired beacon as seen by the rest of the application.

    Owned by the DeviceRegistry; other components refer to it by id and
    only ever receive copies.
    """
    id: str
    name: str
    connected: bool = True
    battery_level: int = BATTERY_LEVEL_MAX
    last_seen: Optional[datetime] = None
    last_location: Optional[Coordinates] = None
    proximity: ProximityTier = ProximityTier.UNKNOWN
    distance_meters: Optional[float] = None
    in_search_mode: bool = False

    def __post_init__(self):
        if not self.id:
            raise ValueError('Device id is required')
        if isinstance(self.battery_level, bool) or not isinstance(self.battery_level, int):
            raise ValueError(f'Battery level must be an integer: {self.battery_level!r}')
        if not BATTERY_LEVEL_MIN <= self.battery_level <= BATTERY_LEVEL_MAX:
            raise ValueError(f'Battery level out of range: {self.battery_level}')
        self.proximity = ProximityTier(self.proximity)
        check_proximity(self.proximity, self.distance_meters)

    @classmethod
    def from_dict(cls, data: dict) -> 'DeviceRecord':
        """
        Build a freshly paired record from API input.

        Args:
            data: Dict with 'id' and 'name', optionally 'connected' and
                'battery_level'.

        Returns:
            New DeviceRecord with no tracking data yet.

        Raises:
            ValueError: On missing or invalid fields.
        """
        device_id = str(data.get('id') or '').strip()
        name = str(data.get('name') or '').strip()
        if not device_id:
            raise ValueError('Device id is required')
        if not name:
            raise ValueError('Device name is required')

        try:
            battery_level = int(data.get('battery_level', BATTERY_LEVEL_MAX))
        except (TypeError, ValueError):
            raise ValueError('Battery level must be an integer')

        return cls(
            id=device_id,
            name=name,
            connected=bool(data.get('connected', True)),
            battery_level=battery_level,
            last_seen=datetime.now(),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'name': self.name,
            'connected': self.connected,
            'battery_level': self.battery_level,
            'last_seen': self.last_seen.isoformat() if self.last_seen else None,
            'last_location': self.last_location.to_dict() if self.last_location else None,
            'proximity': str(self.proximity),
            'distance_meters': round(self.distance_meters, 2) if self.distance_meters is not None else None,
            'in_search_mode': self.in_search_mode,
        }


@dataclass
class TrackingStatus:
    """Snapshot of the tracking loop."""
    is_tracking: bool = False
    device_id: Optional[str] = None
    interval_seconds: float = 0.0
    started_at: Optional[datetime] = None
    user_location: Optional[Coordinates] = None
    last_signal_strength: Optional[float] = None
    tick_count: int = 0
    skipped_ticks: int = 0
    location_failures: int = 0
    last_error: Optional[str] = None

    @property
    def elapsed_seconds(self) -> Optional[float]:
        if self.started_at is None:
            return None
        return (datetime.now() - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        elapsed = self.elapsed_seconds
        return {
            'is_tracking': self.is_tracking,
            'device_id': self.device_id,
            'interval_seconds': self.interval_seconds,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'elapsed_seconds': round(elapsed, 1) if elapsed is not None else None,
            'user_location': self.user_location.to_dict() if self.user_location else None,
            'last_signal_strength': self.last_signal_strength,
            'tick_count': self.tick_count,
            'skipped_ticks': self.skipped_ticks,
            'location_failures': self.location_failures,
            'last_error': self.last_error,
        }
