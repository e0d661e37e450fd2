"""
Configuration for KeyCompass.

Every setting can be overridden with an environment variable carrying the
KEYCOMPASS_ prefix, e.g. KEYCOMPASS_PORT=8080.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

ENV_PREFIX = 'KEYCOMPASS_'


def _get_env(key: str, default: str) -> str:
    """Get environment variable with default."""
    return os.environ.get(f'{ENV_PREFIX}{key}', default)


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer with default."""
    try:
        return int(_get_env(key, str(default)))
    except ValueError:
        return default


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float with default."""
    try:
        return float(_get_env(key, str(default)))
    except ValueError:
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean with default."""
    val = _get_env(key, '').lower()
    if val in ('true', '1', 'yes', 'on'):
        return True
    if val in ('false', '0', 'no', 'off'):
        return False
    return default


def _get_env_optional_int(key: str) -> Optional[int]:
    val = _get_env(key, '')
    try:
        return int(val) if val else None
    except ValueError:
        return None


# Server settings
HOST = _get_env('HOST', '0.0.0.0')
PORT = _get_env_int('PORT', 5050)
DEBUG = _get_env_bool('DEBUG', False)

# Logging settings
_log_level_str = _get_env('LOG_LEVEL', 'WARNING' if not DEBUG else 'DEBUG').upper()
LOG_LEVEL = getattr(logging, _log_level_str, logging.WARNING)
LOG_FORMAT = _get_env('LOG_FORMAT', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# Tracking settings
TRACKING_INTERVAL = _get_env_float('TRACKING_INTERVAL', 2.0)

# 'simulated' or 'reported'
SIGNAL_SOURCE = _get_env('SIGNAL_SOURCE', 'simulated').lower()
SIGNAL_MAX_AGE = _get_env_float('SIGNAL_MAX_AGE', 10.0)

# 'reported' or 'static'
LOCATION_PROVIDER = _get_env('LOCATION_PROVIDER', 'reported').lower()
STATIC_LATITUDE = _get_env_float('STATIC_LATITUDE', 37.7749)
STATIC_LONGITUDE = _get_env_float('STATIC_LONGITUDE', -122.4194)

# Seed for simulated signal and position noise (unset = nondeterministic)
RANDOM_SEED = _get_env_optional_int('RANDOM_SEED')

# Add the example device on startup
DEMO_DEVICE = _get_env_bool('DEMO_DEVICE', True)


def configure_logging() -> None:
    """Configure root logging for the application."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format=LOG_FORMAT,
        stream=sys.stderr
    )
