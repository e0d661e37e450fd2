"""
Device API - paired device records and the active device selection.

The front end reads device state from here; proximity and location fields
are written by the tracking loop.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request, Response

from utils.locator import (
    Coordinates,
    DeviceNotFound,
    DeviceRecord,
    get_device_registry,
    get_tracking_loop,
    haversine_distance,
)
from utils.logging import get_logger

logger = get_logger('keycompass.devices')

devices_bp = Blueprint('devices', __name__, url_prefix='/api/devices')


def _not_found(device_id: str) -> tuple[Response, int]:
    return jsonify({
        'status': 'error',
        'message': f'Device not found: {device_id}'
    }), 404


def _device_detail(device: DeviceRecord) -> dict:
    data = device.to_dict()
    data['proximity_display'] = device.proximity.display()
    return data


@devices_bp.route('', methods=['GET'])
def list_devices() -> Response:
    """
    List all paired devices.

    Returns:
        JSON with device count, active device id and device records.
    """
    registry = get_device_registry()
    devices = registry.get_all_devices()

    return jsonify({
        'count': len(devices),
        'active_device_id': registry.active_device_id,
        'devices': [d.to_dict() for d in devices],
    })


@devices_bp.route('', methods=['POST'])
def add_device() -> Response:
    """
    Add a device produced by the pairing flow.

    Request JSON:
        - id: Device identifier
        - name: Display name
        - connected: Connectivity flag (optional)
        - battery_level: Battery percentage 0-100 (optional)

    Returns:
        JSON with the new record.
    """
    data = request.get_json(silent=True) or {}

    try:
        record = DeviceRecord.from_dict(data)
        registry = get_device_registry()
        device = registry.add_device(record)
    except ValueError as e:
        return jsonify({
            'status': 'error',
            'message': str(e)
        }), 400

    return jsonify({
        'status': 'success',
        'device': device.to_dict()
    }), 201


@devices_bp.route('/<device_id>', methods=['GET'])
def get_device(device_id: str) -> Response:
    """Get one device, including presentation hints for its proximity."""
    device = get_device_registry().get_device(device_id)
    if device is None:
        return _not_found(device_id)

    return jsonify(_device_detail(device))


@devices_bp.route('/<device_id>', methods=['DELETE'])
def remove_device(device_id: str) -> Response:
    """Remove a device, stopping tracking first if it is being tracked."""
    tracker = get_tracking_loop()
    if tracker.device_id == device_id:
        tracker.stop()

    try:
        get_device_registry().remove_device(device_id)
    except DeviceNotFound:
        return _not_found(device_id)

    return jsonify({'status': 'removed', 'device_id': device_id})


@devices_bp.route('/active', methods=['POST'])
def set_active_device() -> Response:
    """
    Select the active device and follow it with the tracking loop.

    Request JSON:
        - device_id: Device to track, or null to clear the selection

    Returns:
        JSON with the active device and tracking status.
    """
    data = request.get_json(silent=True) or {}
    device_id = data.get('device_id')

    registry = get_device_registry()
    tracker = get_tracking_loop()

    try:
        registry.set_active_device(device_id)
        if device_id is None:
            tracker.stop()
        else:
            tracker.start(device_id)
    except DeviceNotFound:
        return _not_found(device_id)

    active = registry.active_device
    return jsonify({
        'status': 'success',
        'active_device': active.to_dict() if active else None,
        'tracking': tracker.status().to_dict(),
    })


@devices_bp.route('/<device_id>/search-mode', methods=['POST'])
def toggle_search_mode(device_id: str) -> Response:
    """Toggle search mode (sound and light on the beacon)."""
    try:
        in_search_mode = get_device_registry().toggle_search_mode(device_id)
    except DeviceNotFound:
        return _not_found(device_id)

    logger.info(f"Search mode {'on' if in_search_mode else 'off'} for {device_id}")
    return jsonify({
        'status': 'success',
        'device_id': device_id,
        'in_search_mode': in_search_mode,
    })


@devices_bp.route('/<device_id>/distance', methods=['GET'])
def get_separation(device_id: str) -> Response:
    """
    Great-circle distance between a point and the device's last location.

    Query parameters:
        - lat: Latitude of the reference point
        - lon: Longitude of the reference point
    """
    latitude = request.args.get('lat', type=float)
    longitude = request.args.get('lon', type=float)
    if latitude is None or longitude is None:
        return jsonify({
            'status': 'error',
            'message': 'lat and lon query parameters are required'
        }), 400

    try:
        origin = Coordinates(latitude, longitude).validate()
    except ValueError as e:
        return jsonify({
            'status': 'error',
            'message': str(e)
        }), 400

    device = get_device_registry().get_device(device_id)
    if device is None:
        return _not_found(device_id)

    if device.last_location is None:
        return jsonify({
            'status': 'error',
            'message': 'Device has no known location'
        }), 409

    return jsonify({
        'status': 'success',
        'device_id': device_id,
        'distance_meters': round(haversine_distance(origin, device.last_location), 1),
    })
