#!/usr/bin/env python3

""" keyfx Animation Host - Main entry point """

import argparse
import logging
import sys

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO

from keyfx.animations.descriptor import DEFAULT_INFO_TIMEOUT
from keyfx.animations.keymap import KeyMap
from keyfx.animations.manager import DEFAULT_FPS, AnimationManager
from keyfx.animations.registry import AnimationRegistry
from keyfx.api.animations import register_animation_routes
from keyfx.config import load_config

# Configure logging
logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description="keyfx animation host")
    parser.add_argument(
        '--config',
        type=str,
        default='config.ini',
        help='Path to the configuration file (default: config.ini)'
    )
    parser.add_argument('--list', action='store_true',
                        help='Print the installed animations and exit')
    parser.add_argument('--host', type=str, default=None, help='Override [SERVER] HOST')
    parser.add_argument('--port', type=int, default=None, help='Override [SERVER] PORT')
    return parser.parse_args(argv)


def create_manager(config):
    """Build the registry and manager described by the configuration."""
    registry = AnimationRegistry(
        animation_dir=config.get('ANIMATIONS', 'DIRECTORY', fallback=None),
        info_timeout=config.getfloat('ANIMATIONS', 'INFO_TIMEOUT', fallback=DEFAULT_INFO_TIMEOUT)
    )
    keymap_path = config.get('ANIMATIONS', 'KEYMAP', fallback=None)
    keymap = KeyMap.load(keymap_path) if keymap_path else KeyMap()
    return AnimationManager(
        registry,
        keymap=keymap,
        fps=config.getint('ANIMATIONS', 'FPS', fallback=DEFAULT_FPS)
    )


def create_app(manager):
    """Create the Flask app and SocketIO server around a manager."""
    app = Flask(__name__)
    CORS(app)
    socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading')

    @app.route('/health')
    def health():
        return jsonify({
            'status': 'ok',
            'animations': len(manager.registry),
            'sessions': len(manager.sessions)
        })

    register_animation_routes(app, manager, socketio)
    return app, socketio


def print_animations(manager):
    for animation in manager.get_all_animations():
        print(f"{animation['guid']}  {animation['name']} {animation['version']}  "
              f"({animation['author']}, {animation['year']})")


def main(argv=None):
    args = parse_arguments(argv)
    config = load_config(args.config)

    log_level = config.get('DEFAULT', 'LOG_LEVEL', fallback='INFO')
    logging.basicConfig(level=getattr(logging, log_level.upper(), logging.INFO),
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    manager = create_manager(config)
    count = manager.scan()
    logger.info(f"Found {count} animations in {manager.registry.animation_dir}")

    if args.list:
        print_animations(manager)
        return 0

    host = args.host or config.get('SERVER', 'HOST', fallback='127.0.0.1')
    port = args.port or config.getint('SERVER', 'PORT', fallback=5000)

    app, socketio = create_app(manager)
    manager.start_playback()
    try:
        logger.info(f"Starting web server on {host}:{port}")
        socketio.run(app, host=host, port=port, allow_unsafe_werkzeug=True)
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    finally:
        manager.shutdown()
        logger.info("Server shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
