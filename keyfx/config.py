"""
Configuration loading for the keyfx service.

Example config.ini:

    [DEFAULT]
    LOG_LEVEL = INFO

    [ANIMATIONS]
    DIRECTORY = ./animations
    INFO_TIMEOUT = 1.0
    FPS = 60
    KEYMAP = ./keymap.json

    [SERVER]
    HOST = 127.0.0.1
    PORT = 5000
"""

import configparser
import logging
import os

logger = logging.getLogger(__name__)


def load_config(config_path='config.ini'):
    """Load configuration from file."""
    abs_config_path = os.path.abspath(config_path)
    if not os.path.exists(abs_config_path):
        # Fall back to a path relative to the package
        package_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        path_relative_to_package = os.path.join(package_dir, config_path)
        if os.path.exists(path_relative_to_package):
            abs_config_path = path_relative_to_package
            logger.debug(f"Config path '{config_path}' resolved relative to package: {abs_config_path}")
        else:
            logger.warning(f"Config file '{config_path}' (resolved to '{abs_config_path}') not found. Using defaults.")
            abs_config_path = None

    config = configparser.ConfigParser(interpolation=None)
    if abs_config_path:
        read_ok = config.read(abs_config_path)
        if not read_ok:
            logger.warning(f"Config file '{abs_config_path}' exists but failed to read. Using defaults.")
    return config
