"""
Animation Session Module.

This module runs one animation instance against a set of keys and speaks
the run-mode protocol with it:

- the keymap and parameter preamble when the animation is started
- frame commands driven by the host tick
- start commands on (re)trigger
- key events, by name or by position
- live parameter updates

Colors the animation reports back are kept per key until the next run.
"""

import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .clock import FrameClock
from .descriptor import RUN_FLAG, Descriptor, KeypressMode
from .keymap import KeyMap
from .output import OutputReader
from .params import ParamValueError, coerce_value, percent_encode
from .transport import LineTransport, ProcessTransport

# Configure logging
logger = logging.getLogger(__name__)

TransportFactory = Callable[[str, List[str]], LineTransport]


def _seconds_to_ms(value: Any) -> int:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(seconds) or math.isinf(seconds):
        return 0
    return int(round(seconds * 1000.))


class AnimationSession:
    """
    One animation bound to a set of keys and (while active) a child process.

    Sessions are created inert. init() binds the keys and parameter values,
    and the process is only launched on the first frame, key event or
    retrigger.
    """

    def __init__(self, descriptor: Descriptor,
                 transport_factory: TransportFactory = ProcessTransport):
        """
        Initialize the session.

        Args:
            descriptor: Metadata of the animation to run
            transport_factory: Called as factory(path, args) to create the
                               channel to the animation process
        """
        self.descriptor = descriptor
        self.transport_factory = transport_factory
        self.transport: Optional[LineTransport] = None
        self.initialized = False

        self.keymap = KeyMap()
        self.keys: List[str] = []
        self.active_keys: List[str] = []
        self.param_values: Dict[str, Any] = {}

        self.duration_ms = 1000
        self.repeat_ms = 0
        self.min_x = 0
        self.min_y = 0

        self.stopped = False
        self.first_frame = False
        self.clock = FrameClock(absolute_time=descriptor.absolute_time)
        self.reader = OutputReader()

    @property
    def path(self) -> str:
        return self.descriptor.path

    @property
    def running(self) -> bool:
        return self.transport is not None

    @property
    def colors(self) -> Dict[str, int]:
        """Latest committed ARGB color per key."""
        return dict(self.reader.colors)

    @property
    def frame_acked(self) -> bool:
        return self.reader.frame_acked

    @property
    def ever_acked(self) -> bool:
        return self.reader.ever_acked

    @property
    def last_frame(self) -> int:
        return self.clock.last_frame

    def init(self, keymap: KeyMap, keys: Iterable[str],
             param_values: Optional[Mapping[str, Any]] = None) -> None:
        """
        Bind the session to a key layout and parameter values.

        Args:
            keymap: Positions of every key on the device
            keys: Keys this animation draws on
            param_values: Parameter overrides; missing parameters use their
                          declared defaults
        """
        if not self.path:
            return
        self.stop()
        self.keymap = keymap
        self.keys = list(keys)
        self.param_values = self._merge_values(param_values)
        self._set_duration()
        self.stopped = self.first_frame = False
        self.initialized = True

    def _merge_values(self, param_values: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        values = self.descriptor.default_values()
        for name, value in (param_values or {}).items():
            name = name.lower()
            param = self.descriptor.param(name)
            if param is None:
                values[name] = value
                continue
            try:
                values[name] = coerce_value(param.type, value)
            except (ParamValueError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring value {value!r} for parameter '{name}' of {self.descriptor.name}: {e}")
        return values

    def _set_duration(self) -> None:
        if self.descriptor.absolute_time:
            self.duration_ms = 1000
            self.repeat_ms = 0
        else:
            self.duration_ms = _seconds_to_ms(self.param_values.get('duration'))
            if self.duration_ms <= 0:
                self.duration_ms = -1
            self.repeat_ms = _seconds_to_ms(self.param_values.get('repeat'))
        self.clock.duration_ms = self.duration_ms

    def parameters(self, param_values: Mapping[str, Any]) -> None:
        """Push new parameter values to a running animation that accepts live updates."""
        if not self.initialized or self.transport is None or not self.descriptor.live_params:
            return
        self.param_values = self._merge_values(param_values)
        self._set_duration()
        self._print_params()

    def _send(self, line: str) -> None:
        if self.transport is not None:
            self.transport.send(line)

    def _print_params(self) -> None:
        self._send('begin params')
        for name in sorted(self.param_values):
            value = self.param_values[name]
            param = self.descriptor.param(name)
            text = param.format(value) if param is not None else str(value)
            self._send(f"param {name} {percent_encode(text)}")
        self._send('end params')

    def start(self, timestamp: int) -> None:
        """
        Launch the animation process and send the keymap and parameters.

        Args:
            timestamp: Host time in milliseconds, the origin of the frame clock
        """
        if not self.initialized:
            return
        self.stop()
        self.stopped = self.first_frame = False
        self.reader.reset()

        self.transport = self.transport_factory(self.path, [RUN_FLAG])
        self.transport.start()

        # Keys missing from the keymap can't be drawn
        self.active_keys = [key for key in self.keys if self.keymap.key(key) is not None]
        positions = [self.keymap.key(key) for key in self.active_keys]
        self.min_x = min((pos.x for pos in positions), default=0)
        self.min_y = min((pos.y for pos in positions), default=0)

        self._send('begin keymap')
        self._send(f"keycount {len(self.active_keys)}")
        for key, pos in zip(self.active_keys, positions):
            self._send(f"key {key} {pos.x - self.min_x},{pos.y - self.min_y}")
        self._send('end keymap')
        self._print_params()
        self._send('begin run')
        self.clock.reset(timestamp)

    def stop(self) -> None:
        """Kill the animation process (reaped in the background) and clear its colors."""
        self.reader.clear_colors()
        if self.transport is not None:
            logger.debug(f"Stopping {self.path}")
            self.transport.kill()
            self.transport = None

    def close(self) -> None:
        """Kill the animation process and wait briefly for it to exit."""
        if self.transport is not None:
            self.transport.close(1.0)
            self.transport = None

    def __del__(self):
        """Clean up the animation process when the session is destroyed"""
        if getattr(self, 'transport', None) is not None:
            self.close()

    def poll(self) -> None:
        """Consume everything the animation printed since the last call."""
        if self.transport is None:
            return
        self.reader.feed_lines(self.transport.poll())
        if self.reader.ended:
            self.stopped = True

    def _next_frame(self, timestamp: int) -> None:
        for command in self.clock.advance(timestamp):
            self._send(command)
        self.first_frame = True

    def _trigger(self, timestamp: int) -> None:
        if self.transport is None:
            self.start(timestamp)
        self._next_frame(timestamp)
        self._send('start')

    def retrigger(self, timestamp: int, allow_preempt: bool = False) -> None:
        """
        Restart the animation.

        With allow_preempt and an animation that declares preempt, it is first
        triggered one repeat interval in the past so the new run starts
        mid-cycle instead of from zero. Key events never preempt.
        """
        if not self.initialized:
            return
        if allow_preempt and self.descriptor.preempt and self.repeat_ms > 0:
            self._trigger(timestamp - self.repeat_ms)
        self._trigger(timestamp)

    def keypress(self, key: str, pressed: bool, timestamp: int) -> None:
        """
        Forward a key event according to the animation's keypress mode.

        Args:
            key: Key identifier
            pressed: True for key down, False for key up
            timestamp: Host time in milliseconds
        """
        if not self.initialized:
            return
        if self.transport is None:
            self.start(timestamp)
        state = 'down' if pressed else 'up'
        mode = self.descriptor.kp_mode

        if mode == KeypressMode.NONE:
            # Animations without key support are retriggered instead
            if pressed:
                self.retrigger(timestamp)
        elif mode == KeypressMode.NAME:
            self._next_frame(timestamp)
            self._send(f"key {key} {state}")
        elif mode == KeypressMode.POSITION:
            pos = self.keymap.key(key)
            if pos is None:
                return
            self._next_frame(timestamp)
            self._send(f"key {pos.x - self.min_x},{pos.y - self.min_y} {state}")

    def frame(self, timestamp: int) -> None:
        """
        Advance the animation for one host tick.

        The clock only moves once the animation has answered the previous
        frame, so a slow animation is never flooded with frame commands.
        """
        if not self.initialized:
            return
        self.poll()
        if self.stopped:
            return
        if self.transport is None:
            self.start(timestamp)

        if self.reader.frame_acked or not self.first_frame:
            self._next_frame(timestamp)
        self.reader.frame_acked = False
