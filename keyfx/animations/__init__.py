"""
Animation module for keyed lighting devices.

This module provides functionality to discover animation executables,
run them against a set of keys, and collect the colors they produce.
"""

from .descriptor import Descriptor, KeypressMode, load_descriptor, parse_declaration
from .keymap import KeyMap, KeyPos
from .manager import AnimationManager
from .params import Param, ParamType, ParamValueError
from .registry import AnimationRegistry
from .session import AnimationSession
from .transport import LineTransport, MockTransport, ProcessTransport

__all__ = [
    'AnimationManager',
    'AnimationRegistry',
    'AnimationSession',
    'Descriptor',
    'KeyMap',
    'KeyPos',
    'KeypressMode',
    'LineTransport',
    'MockTransport',
    'Param',
    'ParamType',
    'ParamValueError',
    'ProcessTransport',
    'load_descriptor',
    'parse_declaration',
]
