"""
Animation Parameter Module.

This module defines the parameter model declared by animation executables
and the typed values those parameters carry.

Every value on the wire is a percent-encoded string. Inside keyfx each value
is converted to the Python type fixed by its ParamType:

- LONG, ANGLE: int
- DOUBLE: float
- BOOL: bool
- RGB, ARGB: int (0xRRGGBB / 0xAARRGGBB)
- GRADIENT, AGRADIENT: tuple of (position, argb) stops
- STRING, LABEL: str
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote, unquote

# Configure logging
logger = logging.getLogger(__name__)

ONE_DAY = 24. * 60. * 60.

_TRUE_WORDS = ('1', 'true', 'on', 'yes')
_FALSE_WORDS = ('0', 'false', 'off', 'no')


class ParamValueError(ValueError):
    """Raised when a parameter value does not match its declared type."""


class ParamType(Enum):
    """Parameter types, valued by their declaration token."""
    LONG = 'long'
    DOUBLE = 'double'
    BOOL = 'bool'
    RGB = 'rgb'
    ARGB = 'argb'
    GRADIENT = 'gradient'
    AGRADIENT = 'agradient'
    ANGLE = 'angle'
    STRING = 'string'
    LABEL = 'label'

    @classmethod
    def from_token(cls, token: str) -> Optional['ParamType']:
        """Look up a type by its declaration token, or None if unknown."""
        try:
            return cls(token.strip().lower())
        except ValueError:
            return None


def url_param(text: str) -> str:
    """Percent-decode a declaration field and trim it."""
    return unquote(text.strip()).strip()


def percent_encode(text: str) -> str:
    """Percent-encode everything except unreserved characters."""
    return quote(text, safe='')


def _parse_hex(text: str, digits: Tuple[int, ...]) -> int:
    text = text.strip().lstrip('#')
    if len(text) not in digits:
        raise ParamValueError(f"Expected {' or '.join(map(str, digits))} hex digits, got '{text}'")
    try:
        return int(text, 16)
    except ValueError:
        raise ParamValueError(f"Invalid hex color '{text}'")


def _parse_gradient(text: str) -> Tuple[Tuple[int, int], ...]:
    stops = []
    for token in text.split():
        pos, sep, color = token.partition(':')
        if not sep:
            raise ParamValueError(f"Invalid gradient stop '{token}'")
        try:
            position = int(pos)
        except ValueError:
            raise ParamValueError(f"Invalid gradient position '{pos}'")
        if not 0 <= position <= 100:
            raise ParamValueError(f"Gradient position out of range: {position}")
        argb = _parse_hex(color, (6, 8))
        if len(color.lstrip('#')) == 6:
            argb |= 0xff000000
        stops.append((position, argb))
    if not stops:
        raise ParamValueError("Gradient has no stops")
    return tuple(sorted(stops))


def parse_value(ptype: ParamType, text: Optional[str]) -> Any:
    """
    Convert wire text into a typed value.

    Args:
        ptype: The declared type of the parameter
        text: Decoded wire text

    Returns:
        The typed value, or None for empty text

    Raises:
        ParamValueError: If the text is not a valid value for the type
    """
    if text is None:
        return None
    text = text.strip()
    if text == '' and ptype not in (ParamType.STRING, ParamType.LABEL):
        return None

    if ptype in (ParamType.LONG, ParamType.ANGLE):
        try:
            return int(text)
        except ValueError:
            try:
                return int(float(text))
            except ValueError:
                raise ParamValueError(f"Invalid integer '{text}'")
    if ptype == ParamType.DOUBLE:
        try:
            return float(text)
        except ValueError:
            raise ParamValueError(f"Invalid number '{text}'")
    if ptype == ParamType.BOOL:
        lowered = text.lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        raise ParamValueError(f"Invalid boolean '{text}'")
    if ptype == ParamType.RGB:
        return _parse_hex(text, (6,))
    if ptype == ParamType.ARGB:
        value = _parse_hex(text, (6, 8))
        if len(text.lstrip('#')) == 6:
            value |= 0xff000000
        return value
    if ptype in (ParamType.GRADIENT, ParamType.AGRADIENT):
        return _parse_gradient(text)
    return text


def coerce_value(ptype: ParamType, value: Any) -> Any:
    """Accept either wire text or an already-typed value."""
    if value is None or isinstance(value, str):
        return parse_value(ptype, value)
    if ptype == ParamType.BOOL:
        return bool(value)
    if ptype in (ParamType.LONG, ParamType.ANGLE, ParamType.RGB, ParamType.ARGB):
        return int(value)
    if ptype == ParamType.DOUBLE:
        return float(value)
    if ptype in (ParamType.GRADIENT, ParamType.AGRADIENT):
        return tuple((int(pos), int(color)) for pos, color in value)
    return str(value)


def format_value(ptype: ParamType, value: Any) -> str:
    """Convert a typed value back into its wire text (not yet percent-encoded)."""
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    if ptype == ParamType.BOOL:
        return 'true' if value else 'false'
    if ptype in (ParamType.LONG, ParamType.ANGLE):
        return str(int(value))
    if ptype == ParamType.DOUBLE:
        return f"{float(value):g}"
    if ptype == ParamType.RGB:
        return f"{int(value) & 0xffffff:06x}"
    if ptype == ParamType.ARGB:
        return f"{int(value) & 0xffffffff:08x}"
    if ptype in (ParamType.GRADIENT, ParamType.AGRADIENT):
        return ' '.join(f"{pos}:{color & 0xffffffff:08x}" for pos, color in value)
    return str(value)


@dataclass(frozen=True)
class Param:
    """One configurable parameter declared by an animation."""
    type: ParamType
    name: str
    prefix: str = ''
    postfix: str = ''
    default: Any = None
    minimum: Any = None
    maximum: Any = None

    def format(self, value: Any) -> str:
        return format_value(self.type, value)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the parameter to a dictionary representation.

        Returns:
            Dictionary with wire-formatted default and range values
        """
        return {
            'type': self.type.value,
            'name': self.name,
            'prefix': self.prefix,
            'postfix': self.postfix,
            'default': self.format(self.default),
            'minimum': self.format(self.minimum),
            'maximum': self.format(self.maximum),
        }
