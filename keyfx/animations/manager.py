"""
Animation Manager Module.

This module provides a high-level interface for running animations,
including discovering them, binding them to keys, and driving them with a
fixed-rate tick and keyboard events.
"""

import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .keymap import KeyMap
from .registry import AnimationRegistry
from .session import AnimationSession

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_FPS = 60


def now_ms() -> int:
    """Monotonic host time in milliseconds."""
    return int(time.monotonic() * 1000)


class AnimationManager:
    """
    Owns the animation sessions of one device and runs their tick.

    Ticks and key events are serialized on one lock, so every session sees
    a single timeline even though the tick runs on its own thread.
    """

    def __init__(self, registry: AnimationRegistry,
                 keymap: Optional[KeyMap] = None,
                 fps: int = DEFAULT_FPS,
                 clock: Callable[[], int] = now_ms):
        """
        Initialize the animation manager.

        Args:
            registry: Registry of installed animations
            keymap: Key positions used when a session doesn't bring its own
            fps: Tick rate of the playback thread
            clock: Source of host timestamps in milliseconds
        """
        self.registry = registry
        self.keymap = keymap or KeyMap()
        self.fps = fps if fps > 0 else DEFAULT_FPS
        self.clock = clock

        self.sessions: Dict[str, AnimationSession] = {}
        self._lock = threading.RLock()

        # Playback state
        self.playback_active = False
        self.playback_thread: Optional[threading.Thread] = None
        self.playback_stop_event = threading.Event()

        # Callbacks
        self.on_frame = None
        self.on_session_started = None
        self.on_session_stopped = None

    def set_callbacks(self,
                      on_frame: Optional[Callable[[str, Dict[str, int]], None]] = None,
                      on_session_started: Optional[Callable[[str], None]] = None,
                      on_session_stopped: Optional[Callable[[str], None]] = None) -> None:
        """
        Set callback functions for animation events.

        Args:
            on_frame: Color sink, called after every tick with the session ID
                      and its committed key -> ARGB map
            on_session_started: Called when a session is created, with its ID
            on_session_stopped: Called when a session is removed, with its ID
        """
        self.on_frame = on_frame
        self.on_session_started = on_session_started
        self.on_session_stopped = on_session_stopped

    def scan(self) -> int:
        """
        Rescan the animations directory.

        Running sessions keep their own copy of the animation's metadata
        and are not affected.

        Returns:
            Number of registered animations
        """
        with self._lock:
            return self.registry.scan()

    def get_all_animations(self) -> List[Dict[str, Any]]:
        return [descriptor.to_dict() for descriptor in self.registry.list()]

    def get_animation(self, guid: str) -> Optional[Dict[str, Any]]:
        descriptor = self.registry.get(guid)
        return descriptor.to_dict() if descriptor else None

    def create_session(self, guid: str, keys: Iterable[str],
                       params: Optional[Mapping[str, Any]] = None,
                       keymap: Optional[KeyMap] = None) -> Optional[str]:
        """
        Create and initialize a session for an animation.

        The animation process is launched on the next tick.

        Args:
            guid: Guid of a registered animation
            keys: Keys the animation draws on
            params: Parameter overrides
            keymap: Key positions, defaults to the manager's keymap

        Returns:
            Session ID, or None if the animation is unknown
        """
        session = self.registry.copy(guid)
        if session is None:
            logger.warning(f"Animation not found: {guid}")
            return None
        session.init(keymap or self.keymap, keys, params)

        session_id = str(uuid.uuid4())
        with self._lock:
            self.sessions[session_id] = session
        logger.info(f"Created session {session_id} for animation {session.descriptor.name}")

        if self.on_session_started:
            self.on_session_started(session_id)
        return session_id

    def get_session(self, session_id: str) -> Optional[AnimationSession]:
        return self.sessions.get(session_id)

    def remove_session(self, session_id: str) -> bool:
        """
        Stop and forget a session.

        Returns:
            True if the session existed
        """
        with self._lock:
            session = self.sessions.pop(session_id, None)
            if session is None:
                logger.warning(f"Session not found: {session_id}")
                return False
            session.stop()
        logger.info(f"Removed session {session_id}")

        if self.on_session_stopped:
            self.on_session_stopped(session_id)
        return True

    def update_parameters(self, session_id: str, params: Mapping[str, Any]) -> bool:
        """
        Send new parameter values to a running session.

        Returns:
            False if the session is unknown, its process has not started
            yet, or its animation doesn't take live parameter updates
        """
        session = self.sessions.get(session_id)
        if session is None or not session.descriptor.live_params:
            return False
        with self._lock:
            if not session.running:
                return False
            session.parameters(params)
        return True

    def retrigger(self, session_id: str, timestamp: Optional[int] = None) -> bool:
        session = self.sessions.get(session_id)
        if session is None:
            return False
        with self._lock:
            session.retrigger(self.clock() if timestamp is None else timestamp, allow_preempt=True)
        return True

    def keypress(self, key: str, pressed: bool, timestamp: Optional[int] = None,
                 session_id: Optional[str] = None) -> None:
        """
        Route a key event to one session, or to every session drawing on that key.
        """
        timestamp = self.clock() if timestamp is None else timestamp
        with self._lock:
            if session_id is not None:
                targets = [self.sessions[session_id]] if session_id in self.sessions else []
            else:
                targets = [session for session in self.sessions.values() if key in session.keys]
            for session in targets:
                session.keypress(key, pressed, timestamp)

    def tick(self, timestamp: Optional[int] = None) -> None:
        """Advance every session by one frame and publish their colors."""
        timestamp = self.clock() if timestamp is None else timestamp
        with self._lock:
            frames = []
            for session_id, session in list(self.sessions.items()):
                session.frame(timestamp)
                frames.append((session_id, session.colors))

        if self.on_frame:
            for session_id, colors in frames:
                self.on_frame(session_id, colors)

    def start_playback(self) -> bool:
        """
        Start the tick thread.

        Returns:
            True if playback was started, False if it was already running
        """
        if self.playback_active:
            return False

        self.playback_active = True
        self.playback_stop_event.clear()
        self.playback_thread = threading.Thread(target=self._playback_worker, daemon=True)
        self.playback_thread.start()

        logger.info(f"Started animation playback at {self.fps} FPS")
        return True

    def stop_playback(self) -> bool:
        """
        Stop the tick thread.

        Returns:
            True if playback was stopped, False if no playback was active
        """
        if not self.playback_active:
            return False

        # Signal the playback thread to stop
        self.playback_stop_event.set()

        # Wait for the thread to finish
        if self.playback_thread and self.playback_thread.is_alive():
            self.playback_thread.join(1.0)

        self.playback_active = False
        self.playback_thread = None
        logger.info("Stopped animation playback")
        return True

    def _playback_worker(self) -> None:
        """Worker thread for the fixed-rate tick."""
        frame_time = 1.0 / self.fps
        try:
            while not self.playback_stop_event.is_set():
                started = time.monotonic()
                self.tick()
                # Wait for next frame
                remaining = frame_time - (time.monotonic() - started)
                if remaining > 0:
                    self.playback_stop_event.wait(remaining)
        except Exception as e:
            logger.error(f"Error in animation playback: {e}", exc_info=True)
        finally:
            self.playback_active = False

    def shutdown(self) -> None:
        """Stop playback and kill every animation process."""
        self.stop_playback()
        with self._lock:
            sessions, self.sessions = self.sessions, {}
            for session in sessions.values():
                session.close()
        logger.info(f"Shut down {len(sessions)} animation sessions")
