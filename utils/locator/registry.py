"""
Shared store of paired device records.

All reads hand out copies and all writes happen under one lock, so a
reader never observes a half-applied update.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional

from .exceptions import DeviceNotFound
from .models import Coordinates, DeviceRecord, ProximityTier, check_proximity

logger = logging.getLogger('keycompass.registry')


class DeviceRegistry:
    """
    Thread-safe registry of DeviceRecords plus the active device selection.

    Every mutation that names an unknown id raises DeviceNotFound and
    changes nothing. Mutations only touch the fields they name.
    """

    def __init__(self):
        self._devices: dict[str, DeviceRecord] = {}
        self._active_id: Optional[str] = None
        self._lock = threading.Lock()

    def _get(self, device_id: str) -> DeviceRecord:
        device = self._devices.get(device_id)
        if device is None:
            raise DeviceNotFound(device_id)
        return device

    @staticmethod
    def _advance_last_seen(device: DeviceRecord, seen_at: datetime) -> None:
        if device.last_seen is None or seen_at >= device.last_seen:
            device.last_seen = seen_at

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def add_device(self, record: DeviceRecord) -> DeviceRecord:
        """
        Add a newly paired device.

        Raises:
            ValueError: If a device with the same id already exists.
        """
        with self._lock:
            if record.id in self._devices:
                raise ValueError(f'Device already exists: {record.id}')
            self._devices[record.id] = replace(record)
            logger.info(f"Device added: {record.id} ({record.name})")
            return replace(record)

    def remove_device(self, device_id: str) -> None:
        """Remove a device, clearing the active selection if it pointed here."""
        with self._lock:
            self._get(device_id)
            del self._devices[device_id]
            if self._active_id == device_id:
                self._active_id = None
            logger.info(f"Device removed: {device_id}")

    def get_device(self, device_id: str) -> Optional[DeviceRecord]:
        with self._lock:
            device = self._devices.get(device_id)
            return replace(device) if device else None

    def get_all_devices(self) -> list[DeviceRecord]:
        with self._lock:
            return [replace(d) for d in self._devices.values()]

    @property
    def device_count(self) -> int:
        with self._lock:
            return len(self._devices)

    def clear(self) -> None:
        with self._lock:
            self._devices.clear()
            self._active_id = None

    # -------------------------------------------------------------------------
    # Active device
    # -------------------------------------------------------------------------

    def set_active_device(self, device_id: Optional[str]) -> None:
        """Select the active device, or clear the selection with None."""
        with self._lock:
            if device_id is not None:
                self._get(device_id)
            self._active_id = device_id

    @property
    def active_device_id(self) -> Optional[str]:
        with self._lock:
            return self._active_id

    @property
    def active_device(self) -> Optional[DeviceRecord]:
        with self._lock:
            if self._active_id is None:
                return None
            device = self._devices.get(self._active_id)
            return replace(device) if device else None

    # -------------------------------------------------------------------------
    # Field updates
    # -------------------------------------------------------------------------

    def update_device_location(
        self,
        device_id: str,
        latitude: float,
        longitude: float,
        seen_at: Optional[datetime] = None,
    ) -> None:
        """Set last_location and refresh last_seen (never moving it backwards)."""
        location = Coordinates(latitude, longitude).validate()
        with self._lock:
            device = self._get(device_id)
            device.last_location = location
            self._advance_last_seen(device, seen_at or datetime.now())

    def update_device_proximity(
        self,
        device_id: str,
        proximity: ProximityTier,
        distance_meters: Optional[float],
    ) -> None:
        """
        Set proximity and distance together.

        Raises:
            ValueError: If distance is missing for a known tier, present for
                UNKNOWN, or negative.
        """
        proximity = ProximityTier(proximity)
        check_proximity(proximity, distance_meters)
        with self._lock:
            device = self._get(device_id)
            device.proximity = proximity
            device.distance_meters = distance_meters

    def toggle_search_mode(self, device_id: str) -> bool:
        """Flip in_search_mode and return the new value."""
        with self._lock:
            device = self._get(device_id)
            device.in_search_mode = not device.in_search_mode
            return device.in_search_mode

    def apply_tracking_update(
        self,
        device_id: str,
        proximity: ProximityTier,
        distance_meters: Optional[float],
        location: Optional[Coordinates] = None,
        seen_at: Optional[datetime] = None,
    ) -> None:
        """
        Apply one tracking tick's results as a single unit.

        Proximity and distance are always written. Location and last_seen
        are written only when a location is given.
        """
        proximity = ProximityTier(proximity)
        check_proximity(proximity, distance_meters)
        if location is not None:
            location.validate()

        with self._lock:
            device = self._get(device_id)
            device.proximity = proximity
            device.distance_meters = distance_meters
            if location is not None:
                device.last_location = location
                self._advance_last_seen(device, seen_at or datetime.now())


# Module-level instance for shared access
_device_registry: Optional[DeviceRegistry] = None


def get_device_registry() -> DeviceRegistry:
    """Get or create the shared device registry."""
    global _device_registry
    if _device_registry is None:
        _device_registry = DeviceRegistry()
    return _device_registry


def set_device_registry(registry: DeviceRegistry) -> None:
    """Install a registry as the shared instance."""
    global _device_registry
    _device_registry = registry


def reset_device_registry() -> None:
    """Reset the shared device registry."""
    global _device_registry
    if _device_registry is not None:
        _device_registry.clear()
    _device_registry = None
