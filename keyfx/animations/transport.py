"""
Line transports for talking to animation processes.

A transport is a bidirectional, line-oriented channel to one animation.

It is responsible for:
- launching the animation (or pretending to)
- writing host commands to it
- collecting whatever it printed without blocking the caller
- killing it

It is not responsible for:
- the meaning of the lines (see session.py and output.py)
- timing
"""

import logging
import queue
import subprocess
import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

# Configure logging
logger = logging.getLogger(__name__)


class LineTransport(ABC):
    """Abstract bidirectional line protocol channel."""

    @abstractmethod
    def start(self) -> bool:
        """Launch the peer. Returns True if it is running."""

    @abstractmethod
    def send(self, line: str) -> None:
        """Write one line (without its newline) to the peer."""

    @abstractmethod
    def poll(self) -> List[str]:
        """Return every complete line received since the last poll."""

    @abstractmethod
    def kill(self) -> None:
        """Kill the peer without waiting for it to exit."""

    @abstractmethod
    def close(self, timeout: float = 1.0) -> None:
        """Kill the peer and wait up to timeout seconds for it to exit."""

    @property
    @abstractmethod
    def running(self) -> bool:
        """Whether the peer is still alive."""


class ProcessTransport(LineTransport):
    """
    Runs an animation executable and exchanges lines over its stdin/stdout.

    Both pipes are serviced by daemon threads: stdout is drained into one
    queue and stdin is fed from another, so neither send() nor poll() ever
    blocks on the child.
    """

    def __init__(self, path: str, args: Sequence[str] = ()):
        self.path = path
        self.args = list(args)
        self.process: Optional[subprocess.Popen] = None
        self._lines: 'queue.Queue[str]' = queue.Queue()
        self._outgoing: 'queue.Queue[Optional[str]]' = queue.Queue()
        self._reader: Optional[threading.Thread] = None
        self._writer: Optional[threading.Thread] = None

    def start(self) -> bool:
        if self.process is not None:
            return self.running
        try:
            self.process = subprocess.Popen(
                [self.path] + self.args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                encoding='utf-8',
                errors='replace',
                bufsize=1,
            )
        except OSError as e:
            logger.error(f"Failed to start {self.path}: {e}")
            return False

        logger.info(f"Starting {self.path}")
        self._reader = threading.Thread(target=self._read_loop, args=(self.process,), daemon=True)
        self._reader.start()
        self._writer = threading.Thread(target=self._write_loop, args=(self.process,), daemon=True)
        self._writer.start()
        return True

    def _read_loop(self, process: subprocess.Popen) -> None:
        """Worker thread pushing stdout lines into the queue."""
        try:
            for line in process.stdout:
                self._lines.put(line.rstrip('\r\n'))
        except (OSError, ValueError) as e:
            # stdout was closed underneath us by kill()
            logger.debug(f"Stopped reading {self.path}: {e}")

    def _write_loop(self, process: subprocess.Popen) -> None:
        """Worker thread writing queued lines to stdin until None is queued."""
        try:
            while True:
                line = self._outgoing.get()
                if line is None:
                    break
                process.stdin.write(line + '\n')
                process.stdin.flush()
        except (OSError, ValueError) as e:
            logger.debug(f"Write to {self.path} failed: {e}")
        finally:
            try:
                process.stdin.close()
            except (OSError, ValueError) as e:
                logger.debug(f"Closing stdin of {self.path} failed: {e}")

    def send(self, line: str) -> None:
        # Once the writer has given up on a dead pipe, lines are dropped
        if self.process is None or self._writer is None or not self._writer.is_alive():
            return
        self._outgoing.put(line)

    def poll(self) -> List[str]:
        lines = []
        while True:
            try:
                lines.append(self._lines.get_nowait())
            except queue.Empty:
                return lines

    def _terminate(self) -> Optional[subprocess.Popen]:
        process, self.process = self.process, None
        if process is None:
            return None
        # The writer closes stdin once it sees the sentinel or a broken pipe
        self._outgoing.put(None)
        try:
            process.kill()
        except OSError as e:
            logger.debug(f"Kill of {self.path} failed: {e}")
        return process

    def kill(self) -> None:
        process = self._terminate()
        if process is None:
            return
        # Reap in the background so the caller never blocks
        threading.Thread(target=process.wait, daemon=True).start()

    def close(self, timeout: float = 1.0) -> None:
        process = self._terminate()
        if process is None:
            return
        try:
            process.wait(timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"{self.path} did not exit within {timeout}s")

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.poll() is None


class MockTransport(LineTransport):
    """
    An in-memory transport for when no real animation process is wanted.
    Records what the host sent and replays lines queued with feed().
    """

    def __init__(self, path: str = '', args: Sequence[str] = ()):
        self.path = path
        self.args = list(args)
        self.sent: List[str] = []
        self.started = False
        self.killed = False
        self.closed = False
        self._pending: List[str] = []

    def start(self) -> bool:
        self.started = True
        logger.debug(f"Mock transport started for {self.path}")
        return True

    def send(self, line: str) -> None:
        if self.started and not self.killed:
            self.sent.append(line)

    def feed(self, *lines: str) -> None:
        """Queue lines as if the animation had printed them."""
        self._pending.extend(lines)

    def poll(self) -> List[str]:
        lines, self._pending = self._pending, []
        return lines

    def kill(self) -> None:
        self.killed = True

    def close(self, timeout: float = 1.0) -> None:
        self.killed = True
        self.closed = True

    @property
    def running(self) -> bool:
        return self.started and not self.killed
