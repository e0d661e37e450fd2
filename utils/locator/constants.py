"""
Constants for beacon proximity tracking.
"""

from __future__ import annotations

# =============================================================================
# SIGNAL STRENGTH WINDOW
# =============================================================================

# Operating window for signal readings (dBm-like units)
SIGNAL_WINDOW_LOW = -100    # weakest usable reading
SIGNAL_WINDOW_HIGH = -30    # strongest usable reading

# Reported readings above this are rejected as bogus
SIGNAL_MAX_VALID = 0

# How long a client-reported reading stays usable (seconds)
DEFAULT_SIGNAL_MAX_AGE = 10.0

# =============================================================================
# DISTANCE ESTIMATION
# =============================================================================

# Distance range produced by the linear model (meters)
DISTANCE_MIN_METERS = 0.5
DISTANCE_MAX_METERS = 50.0

# =============================================================================
# PROXIMITY TIERS
# =============================================================================

PROXIMITY_CLOSE = 'close'
PROXIMITY_MEDIUM = 'medium'
PROXIMITY_FAR = 'far'
PROXIMITY_UNKNOWN = 'unknown'

# Tier thresholds (meters, inclusive upper bound)
PROXIMITY_CLOSE_MAX_METERS = 5.0    # <= 5m -> close
PROXIMITY_MEDIUM_MAX_METERS = 20.0  # <= 20m -> medium, beyond -> far

# =============================================================================
# TRACKING LOOP
# =============================================================================

# Tick period (seconds)
DEFAULT_TRACKING_INTERVAL = 2.0

# Maximum simulated drift per axis before tier scaling (degrees, ~100-200m)
SIMULATED_OFFSET_SPAN_DEGREES = 0.002

# Drift multiplier per tier; tighter when the beacon is closer
OFFSET_MULTIPLIERS = {
    PROXIMITY_CLOSE: 0.2,
    PROXIMITY_MEDIUM: 0.6,
    PROXIMITY_FAR: 1.0,
    PROXIMITY_UNKNOWN: 1.0,
}

# Worker threads for blocking location lookups
LOCATION_WORKER_THREADS = 2

# =============================================================================
# GEO
# =============================================================================

EARTH_RADIUS_METERS = 6371e3

# =============================================================================
# DEVICE RECORDS
# =============================================================================

BATTERY_LEVEL_MIN = 0
BATTERY_LEVEL_MAX = 100

# Example device seeded for development
DEMO_DEVICE_ID = '1'
DEMO_DEVICE_NAME = 'My Keys'
DEMO_DEVICE_BATTERY = 75
DEMO_LATITUDE = 37.7749
DEMO_LONGITUDE = -122.4194
