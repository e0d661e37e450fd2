"""
Error types raised by the proximity tracking core.

None of these are fatal: the tracking loop recovers from the first two
locally, and the HTTP layer maps them to status codes.
"""

from __future__ import annotations


class LocatorError(Exception):
    """Base class for proximity tracking errors."""


class SourceUnavailable(LocatorError):
    """The signal source cannot produce a reading right now."""


class LocationUnavailable(LocatorError):
    """The user's location could not be determined."""


class DeviceNotFound(LocatorError, KeyError):
    """A registry operation targeted an id that does not exist."""

    def __init__(self, device_id: str):
        super().__init__(device_id)
        self.device_id = device_id

    def __str__(self) -> str:
        return f'Device not found: {self.device_id}'
