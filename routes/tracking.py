"""
Tracking API - control the tracking loop and feed it client measurements.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request, Response

from utils.locator import (
    DeviceNotFound,
    ReportedLocationProvider,
    ReportedSignalSource,
    SourceUnavailable,
    get_tracking_loop,
)
from utils.logging import get_logger

logger = get_logger('keycompass.tracking')

tracking_bp = Blueprint('tracking', __name__, url_prefix='/api/tracking')


@tracking_bp.route('/start', methods=['POST'])
def start_tracking() -> Response:
    """
    Start tracking a device.

    Request JSON:
        - device_id: Device to track

    Returns:
        JSON with tracking status.
    """
    data = request.get_json(silent=True) or {}
    device_id = data.get('device_id')
    if not device_id:
        return jsonify({
            'status': 'error',
            'message': 'device_id is required'
        }), 400

    tracker = get_tracking_loop()
    try:
        tracker.start(device_id)
    except DeviceNotFound as e:
        return jsonify({
            'status': 'error',
            'message': str(e)
        }), 404

    return jsonify({
        'status': 'started',
        'tracking': tracker.status().to_dict(),
    })


@tracking_bp.route('/stop', methods=['POST'])
def stop_tracking() -> Response:
    """Stop tracking."""
    get_tracking_loop().stop()
    return jsonify({'status': 'stopped'})


@tracking_bp.route('/status', methods=['GET'])
def tracking_status() -> Response:
    """Get current tracking status."""
    return jsonify(get_tracking_loop().status().to_dict())


@tracking_bp.route('/location', methods=['POST'])
def report_location() -> Response:
    """
    Report the user's current location.

    Request JSON:
        - latitude: Decimal degrees
        - longitude: Decimal degrees
    """
    provider = get_tracking_loop().location_provider
    if not isinstance(provider, ReportedLocationProvider):
        return jsonify({
            'status': 'error',
            'message': 'Location provider does not accept reports'
        }), 400

    data = request.get_json(silent=True) or {}
    try:
        coordinates = provider.report(data['latitude'], data['longitude'])
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({
            'status': 'error',
            'message': f'Invalid location: {e}'
        }), 400

    return jsonify({
        'status': 'success',
        'location': coordinates.to_dict(),
    })


@tracking_bp.route('/signal', methods=['POST'])
def report_signal() -> Response:
    """
    Report a signal-strength measurement taken by the client.

    Request JSON:
        - rssi: Signal strength reading
    """
    source = get_tracking_loop().signal_source
    if not isinstance(source, ReportedSignalSource):
        return jsonify({
            'status': 'error',
            'message': 'Signal source does not accept reports'
        }), 400

    data = request.get_json(silent=True) or {}
    try:
        source.report(data['rssi'])
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({
            'status': 'error',
            'message': f'Invalid signal reading: {e}'
        }), 400

    return jsonify({'status': 'success'})


@tracking_bp.route('/signal', methods=['GET'])
def read_signal() -> Response:
    """
    Take a one-off signal reading outside the tracking loop.

    Returns:
        JSON with the reading, estimated distance and proximity tier.
    """
    tracker = get_tracking_loop()
    try:
        rssi = tracker.signal_source.read()
    except SourceUnavailable as e:
        return jsonify({
            'status': 'unavailable',
            'message': str(e)
        }), 503

    distance, proximity = tracker.estimator.estimate_proximity(rssi)
    return jsonify({
        'status': 'success',
        'rssi': rssi,
        'distance_meters': round(distance, 2),
        'proximity': str(proximity),
    })
