"""
Animation API endpoints.

This module provides REST endpoints for the animation catalog and running
sessions, and a WebSocket color sink streaming session frames to clients.
"""

import logging
from typing import Any, Dict

from flask import Blueprint, abort, jsonify, request

from keyfx.animations.keymap import KeyMap
from keyfx.animations.manager import AnimationManager

# Configure logging
logger = logging.getLogger(__name__)

# Global references (will be set by register_animation_routes)
animation_manager = None
socketio = None

# Create blueprint for animation routes
animations_bp = Blueprint('animations', __name__, url_prefix='/api/animations')


def format_colors(colors: Dict[str, int]) -> Dict[str, str]:
    """Render key -> ARGB values as aarrggbb hex strings."""
    return {key: f'{value:08x}' for key, value in colors.items()}


# WebSocket event handlers
def handle_frame(session_id: str, colors: Dict[str, int]) -> None:
    """
    Color sink: broadcast the committed colors of a session.

    Args:
        session_id: ID of the session that produced the frame
        colors: Key -> ARGB map
    """
    if socketio and colors:
        socketio.emit('animation_frame', {
            'session_id': session_id,
            'colors': format_colors(colors)
        }, namespace='/animations')


def handle_session_started(session_id: str) -> None:
    logger.info(f"Animation session started: {session_id}")
    if socketio:
        socketio.emit('animation_status', {'session_id': session_id, 'running': True}, namespace='/animations')


def handle_session_stopped(session_id: str) -> None:
    logger.info(f"Animation session stopped: {session_id}")
    if socketio:
        socketio.emit('animation_status', {'session_id': session_id, 'running': False}, namespace='/animations')


def _require_manager() -> AnimationManager:
    if not animation_manager:
        abort(503, "Animation service not available")
    return animation_manager


def _json_body() -> Dict[str, Any]:
    if not request.is_json:
        abort(400, "Request must be JSON")
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, "Invalid request data format")
    return data


def _session_state(session_id: str) -> Dict[str, Any]:
    session = _require_manager().get_session(session_id)
    if session is None:
        abort(404, f"Session {session_id} not found")
    return {
        'id': session_id,
        'animation': session.descriptor.guid_string,
        'name': session.descriptor.name,
        'keys': session.keys,
        'running': session.running,
        'stopped': session.stopped,
        'colors': format_colors(session.colors)
    }


# REST API endpoint implementations
@animations_bp.route('/', methods=['GET'])
def get_animations():
    """
    Get a list of all installed animations, sorted by name.

    Returns:
        JSON array of animation descriptors
    """
    return jsonify(_require_manager().get_all_animations())


@animations_bp.route('/scan', methods=['POST'])
def scan_animations():
    """Rescan the animations directory."""
    count = _require_manager().scan()
    return jsonify({'status': 'success', 'count': count})


@animations_bp.route('/<guid>', methods=['GET'])
def get_animation(guid):
    """
    Get details for a specific animation.

    Args:
        guid: Guid of the animation

    Returns:
        JSON animation descriptor
    """
    animation = _require_manager().get_animation(guid)
    if not animation:
        abort(404, f"Animation {guid} not found")
    return jsonify(animation)


@animations_bp.route('/sessions', methods=['POST'])
def create_session():
    """
    Start an animation on a set of keys.

    Request Body:
        guid: Guid of the animation
        keys: List of key identifiers
        keymap: Optional {key: [x, y]} positions
        params: Optional parameter values

    Returns:
        JSON with the new session ID
    """
    manager = _require_manager()
    data = _json_body()

    keys = data.get('keys')
    if not data.get('guid') or not isinstance(keys, list):
        abort(400, "Both 'guid' and a list of 'keys' are required")
    params = data.get('params') or {}
    if not isinstance(params, dict):
        abort(400, "'params' must be an object")

    keymap = None
    if data.get('keymap') is not None:
        if not isinstance(data['keymap'], dict):
            abort(400, "'keymap' must be an object")
        try:
            keymap = KeyMap(data['keymap'])
        except (TypeError, ValueError):
            abort(400, "Invalid keymap positions")

    session_id = manager.create_session(data['guid'], keys, params, keymap)
    if not session_id:
        abort(404, f"Animation {data['guid']} not found")
    return jsonify({'id': session_id, 'status': 'created'}), 201


@animations_bp.route('/sessions/<session_id>', methods=['GET'])
def get_session(session_id):
    return jsonify(_session_state(session_id))


@animations_bp.route('/sessions/<session_id>', methods=['DELETE'])
def delete_session(session_id):
    if not _require_manager().remove_session(session_id):
        abort(404, f"Session {session_id} not found")
    return jsonify({'id': session_id, 'status': 'deleted'})


@animations_bp.route('/sessions/<session_id>/retrigger', methods=['POST'])
def retrigger_session(session_id):
    if not _require_manager().retrigger(session_id):
        abort(404, f"Session {session_id} not found")
    return jsonify({'id': session_id, 'status': 'retriggered'})


@animations_bp.route('/sessions/<session_id>/keypress', methods=['POST'])
def keypress_session(session_id):
    """
    Send a key event to a session.

    Request Body:
        key: Key identifier
        pressed: True for key down, False for key up
    """
    manager = _require_manager()
    data = _json_body()
    if manager.get_session(session_id) is None:
        abort(404, f"Session {session_id} not found")
    if not data.get('key'):
        abort(400, "'key' is required")
    manager.keypress(data['key'], bool(data.get('pressed', True)), session_id=session_id)
    return jsonify({'id': session_id, 'status': 'sent'})


@animations_bp.route('/sessions/<session_id>/params', methods=['PUT'])
def update_session_params(session_id):
    manager = _require_manager()
    data = _json_body()
    session = manager.get_session(session_id)
    if session is None:
        abort(404, f"Session {session_id} not found")
    if not manager.update_parameters(session_id, data):
        abort(409, "Animation is not running yet or does not accept live parameter updates")
    return jsonify({'id': session_id, 'status': 'updated'})


def register_animation_routes(app, manager: AnimationManager, socketio_instance=None):
    """
    Register animation API routes and the WebSocket color sink.

    Args:
        app: Flask application
        manager: AnimationManager instance
        socketio_instance: SocketIO instance, or None to disable streaming
    """
    global animation_manager, socketio

    animation_manager = manager
    socketio = socketio_instance

    manager.set_callbacks(
        on_frame=handle_frame,
        on_session_started=handle_session_started,
        on_session_stopped=handle_session_stopped
    )

    app.register_blueprint(animations_bp)
    logger.info("Animation API routes registered")
    return manager
