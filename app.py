#!/usr/bin/env python3
"""
KeyCompass - lost-item locator backend.

Serves the device and tracking API and runs the proximity tracking loop
for the active device.
"""

from __future__ import annotations

import argparse
import random
from datetime import datetime
from typing import Optional

from flask import Flask, jsonify

import config
from routes import register_blueprints
from utils.locator import (
    Coordinates,
    DeviceRecord,
    DeviceRegistry,
    LocationProvider,
    ReportedLocationProvider,
    ReportedSignalSource,
    SignalSource,
    SimulatedSignalSource,
    StaticLocationProvider,
    TrackingLoop,
    get_device_registry,
    set_device_registry,
    set_tracking_loop,
)
from utils.locator.constants import (
    DEMO_DEVICE_ID,
    DEMO_DEVICE_NAME,
    DEMO_DEVICE_BATTERY,
    DEMO_LATITUDE,
    DEMO_LONGITUDE,
)
from utils.logging import get_logger

logger = get_logger('keycompass')


def build_signal_source(kind: str, rng: random.Random) -> SignalSource:
    """Create the configured signal source."""
    if kind == 'simulated':
        return SimulatedSignalSource(rng=rng)
    if kind == 'reported':
        return ReportedSignalSource(max_age_seconds=config.SIGNAL_MAX_AGE)
    raise ValueError(f'Unknown signal source: {kind}')


def build_location_provider(kind: str) -> LocationProvider:
    """Create the configured location provider."""
    if kind == 'reported':
        return ReportedLocationProvider()
    if kind == 'static':
        return StaticLocationProvider(Coordinates(config.STATIC_LATITUDE, config.STATIC_LONGITUDE))
    raise ValueError(f'Unknown location provider: {kind}')


def seed_demo_device(registry: DeviceRegistry) -> None:
    """Add the example device used during development."""
    if registry.get_device(DEMO_DEVICE_ID) is not None:
        return
    registry.add_device(DeviceRecord(
        id=DEMO_DEVICE_ID,
        name=DEMO_DEVICE_NAME,
        battery_level=DEMO_DEVICE_BATTERY,
        last_seen=datetime.now(),
        last_location=Coordinates(DEMO_LATITUDE, DEMO_LONGITUDE),
    ))


def create_app(
    registry: Optional[DeviceRegistry] = None,
    tracking_loop: Optional[TrackingLoop] = None,
) -> Flask:
    """
    Create the Flask application and wire the tracking components.

    The registry and loop given here become the shared instances the
    blueprints read from.

    Args:
        registry: Device registry (defaults to the loop's registry, else the
            shared instance).
        tracking_loop: Tracking loop (defaults to one built from config).

    Returns:
        Configured Flask app.

    Raises:
        ValueError: If the loop writes into a different registry.
    """
    app = Flask(__name__)

    if registry is None:
        registry = tracking_loop.registry if tracking_loop else get_device_registry()
    if tracking_loop is not None and tracking_loop.registry is not registry:
        raise ValueError('Tracking loop must write into the app registry')
    set_device_registry(registry)

    if tracking_loop is None:
        rng = random.Random(config.RANDOM_SEED)
        tracking_loop = TrackingLoop(
            registry=registry,
            signal_source=build_signal_source(config.SIGNAL_SOURCE, rng),
            location_provider=build_location_provider(config.LOCATION_PROVIDER),
            rng=rng,
            interval=config.TRACKING_INTERVAL,
        )
    set_tracking_loop(tracking_loop)

    if config.DEMO_DEVICE:
        seed_demo_device(registry)

    register_blueprints(app)

    @app.route('/health')
    def health():
        return jsonify({
            'status': 'ok',
            'devices': registry.device_count,
            'tracking': tracking_loop.is_tracking,
        })

    return app


def main() -> None:
    parser = argparse.ArgumentParser(description='KeyCompass locator backend')
    parser.add_argument('--host', default=config.HOST, help='Server host')
    parser.add_argument('--port', type=int, default=config.PORT, help='Server port')
    parser.add_argument('--debug', action='store_true', default=config.DEBUG, help='Enable debug mode')
    parser.add_argument('--interval', type=float, default=None,
                        help='Tracking interval in seconds')
    args = parser.parse_args()

    if args.interval is not None:
        config.TRACKING_INTERVAL = args.interval

    config.configure_logging()
    app = create_app()

    logger.info(f"KeyCompass starting on {args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True, use_reloader=False)


if __name__ == '__main__':
    main()
