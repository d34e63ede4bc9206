"""
Animation Descriptor Module.

This module loads the static metadata of an animation executable.

An animation is asked to describe itself by running it with --ckb-info.
It answers with one "<key> <fields...>" record per line:

    guid {0f9e...}
    name Rainbow%20Wave
    version 1.0
    kpmode position
    param double speed Speed: %20s 1.0 0.1 10

The answer is validated, reserved parameters are filtered out, and the
timing parameters every animation understands (trigger, delay, duration,
repeat, stop, ...) are synthesized.
"""

import copy
import logging
import subprocess
import uuid
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .params import ONE_DAY, Param, ParamType, ParamValueError, parse_value, url_param

# Configure logging
logger = logging.getLogger(__name__)

INFO_FLAG = '--ckb-info'
RUN_FLAG = '--ckb-run'

DEFAULT_INFO_TIMEOUT = 1.0
MIN_DURATION = 0.1

# Parameters that only keyfx may declare
RESERVED_PARAMS = ('delay', 'kpdelay', 'repeat', 'kprepeat', 'stop', 'kpstop', 'kprelease')
REQUIRED_FIELDS = ('guid', 'name', 'version', 'year', 'author', 'license')


class KeypressMode(Enum):
    NONE = 'none'
    NAME = 'name'
    POSITION = 'position'


class Descriptor:
    """Validated metadata for one animation executable."""

    def __init__(self, path: str = ''):
        self.path = path
        self.guid: Optional[uuid.UUID] = None
        self.name = ''
        self.version = ''
        self.year = ''
        self.author = ''
        self.license = ''
        self.description = ''
        self.kp_mode = KeypressMode.NONE
        self.absolute_time = False
        self.preempt = False
        self.live_params = False
        self.repeat = True
        self.params: List[Param] = []

    @property
    def guid_string(self) -> str:
        return '{' + str(self.guid).upper() + '}' if self.guid else ''

    def is_valid(self) -> bool:
        return all(getattr(self, field) for field in REQUIRED_FIELDS)

    def has_param(self, name: str) -> bool:
        return self.param(name) is not None

    def param(self, name: str) -> Optional[Param]:
        name = name.lower()
        for param in self.params:
            if param.name == name:
                return param
        return None

    def default_values(self) -> Dict[str, Any]:
        """Map of parameter name to declared default."""
        return {param.name: param.default for param in self.params}

    def copy(self) -> 'Descriptor':
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the descriptor to a dictionary representation.

        Returns:
            Dictionary with descriptor metadata and parameters
        """
        return {
            'guid': self.guid_string,
            'name': self.name,
            'version': self.version,
            'year': self.year,
            'author': self.author,
            'license': self.license,
            'description': self.description,
            'kpmode': self.kp_mode.value,
            'absolute_time': self.absolute_time,
            'preempt': self.preempt,
            'live_params': self.live_params,
            'repeat': self.repeat,
            'params': [param.to_dict() for param in self.params],
        }

    def __repr__(self):
        return f"<Descriptor {self.name!r} {self.guid_string} at {self.path!r}>"


def _parse_guid(text: str) -> Optional[uuid.UUID]:
    try:
        guid = uuid.UUID(text)
    except ValueError:
        return None
    # The nil UUID counts as missing
    return guid if guid.int else None


def _read_param(components: List[str], descriptor: Descriptor) -> Optional[Param]:
    """
    Build a Param from a "param <type> <name> <prefix> <postfix> <default> [<min>] [<max>]" record.

    Returns None if the declaration must be skipped.
    """
    ptype = ParamType.from_token(components[1])
    if ptype is None:
        logger.debug(f"{descriptor.path}: unknown parameter type '{components[1]}'")
        return None
    name = components[2].lower()
    if descriptor.has_param(name):
        logger.debug(f"{descriptor.path}: duplicate parameter '{name}'")
        return None

    prefix, postfix = url_param(components[3]), url_param(components[4])
    try:
        default = parse_value(ptype, url_param(components[5]))
        minimum = parse_value(ptype, url_param(components[6]))
        maximum = parse_value(ptype, url_param(components[7]))
    except ParamValueError as e:
        logger.debug(f"{descriptor.path}: skipping parameter '{name}': {e}")
        return None

    if name in ('trigger', 'kptrigger') and ptype != ParamType.BOOL:
        return None
    if name == 'duration':
        if descriptor.absolute_time or ptype != ParamType.DOUBLE or default is None:
            return None
        if default < MIN_DURATION or default > ONE_DAY:
            return None
        minimum, maximum = MIN_DURATION, ONE_DAY
    elif name in RESERVED_PARAMS:
        return None

    return Param(ptype, name, prefix, postfix, default, minimum, maximum)


def parse_declaration(lines: Iterable[str], path: str = '') -> Optional[Descriptor]:
    """
    Parse the output of an animation's --ckb-info run.

    Args:
        lines: Declaration records, one per line
        path: Path of the executable the records came from

    Returns:
        A validated Descriptor with synthesized timing parameters,
        or None if required metadata is missing
    """
    descriptor = Descriptor(path)
    default_duration = -1.

    for line in lines:
        components = line.strip().split(' ')
        if len(components) < 2:
            continue
        key = components[0].strip()
        value = components[1]

        if key == 'guid':
            descriptor.guid = _parse_guid(url_param(value))
        elif key in ('name', 'version', 'year', 'author', 'license', 'description'):
            setattr(descriptor, key, url_param(value))
        elif key == 'kpmode':
            if value == 'position':
                descriptor.kp_mode = KeypressMode.POSITION
            elif value == 'name':
                descriptor.kp_mode = KeypressMode.NAME
            else:
                descriptor.kp_mode = KeypressMode.NONE
        elif key == 'time':
            # Absolute time can't be combined with a declared duration
            if default_duration > 0.:
                continue
            descriptor.absolute_time = (value == 'absolute')
        elif key == 'repeat':
            descriptor.repeat = (value == 'on')
        elif key == 'preempt':
            descriptor.preempt = (value == 'on')
        elif key == 'parammode':
            descriptor.live_params = (value == 'live')
        elif key == 'param':
            if len(components) < 3:
                continue
            components += [''] * (8 - len(components))
            param = _read_param(components, descriptor)
            if param is None:
                continue
            if param.name == 'duration':
                default_duration = param.default
            descriptor.params.append(param)

    if not descriptor.is_valid():
        missing = [field for field in REQUIRED_FIELDS if not getattr(descriptor, field)]
        logger.info(f"Rejecting {path or 'animation'}: missing {', '.join(missing)}")
        return None

    _add_timing_params(descriptor, default_duration)
    return descriptor


def _add_timing_params(descriptor: Descriptor, default_duration: float) -> None:
    params = descriptor.params
    if not descriptor.has_param('trigger'):
        params.append(Param(ParamType.BOOL, 'trigger', default=True))
    if not descriptor.has_param('kptrigger'):
        params.append(Param(ParamType.BOOL, 'kptrigger', default=False))
    if descriptor.absolute_time or not descriptor.repeat:
        descriptor.preempt = False

    params.append(Param(ParamType.DOUBLE, 'delay', default=0., minimum=0., maximum=ONE_DAY))
    params.append(Param(ParamType.DOUBLE, 'kpdelay', default=0., minimum=0., maximum=ONE_DAY))
    params.append(Param(ParamType.BOOL, 'kprelease', default=False))

    if default_duration < 0.:
        # Relative time without a declared duration defaults to 1s
        default_duration = 1.
        if not descriptor.absolute_time:
            params.append(Param(ParamType.DOUBLE, 'duration', default=default_duration,
                                minimum=MIN_DURATION, maximum=ONE_DAY))

    if descriptor.repeat:
        # Looping animations stop after a number of repeats
        params.append(Param(ParamType.DOUBLE, 'repeat', default=default_duration,
                            minimum=MIN_DURATION, maximum=ONE_DAY))
        params.append(Param(ParamType.DOUBLE, 'kprepeat', default=default_duration,
                            minimum=MIN_DURATION, maximum=ONE_DAY))
        params.append(Param(ParamType.LONG, 'stop', default=-1, minimum=0, maximum=1000))
        params.append(Param(ParamType.LONG, 'kpstop', default=0, minimum=0, maximum=1000))
    else:
        # One-shot animations stop after a number of seconds
        params.append(Param(ParamType.DOUBLE, 'stop', default=-1., minimum=MIN_DURATION, maximum=ONE_DAY))
        params.append(Param(ParamType.DOUBLE, 'kpstop', default=-1., minimum=MIN_DURATION, maximum=ONE_DAY))


def load_descriptor(path: str, timeout: float = DEFAULT_INFO_TIMEOUT) -> Optional[Descriptor]:
    """
    Run an executable in info mode and parse its declaration.

    Args:
        path: Path to the animation executable
        timeout: Seconds to wait before the executable is killed and rejected

    Returns:
        The Descriptor, or None if the executable hung, failed to run,
        or declared incomplete metadata
    """
    logger.debug(f"Scanning {path}")
    try:
        result = subprocess.run([path, INFO_FLAG],
                                stdin=subprocess.DEVNULL,
                                stdout=subprocess.PIPE,
                                stderr=subprocess.DEVNULL,
                                timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning(f"Animation {path} did not answer within {timeout}s, skipping")
        return None
    except OSError as e:
        logger.warning(f"Failed to run animation {path}: {e}")
        return None

    output = result.stdout.decode('utf-8', errors='replace')
    return parse_declaration(output.splitlines(), path)
