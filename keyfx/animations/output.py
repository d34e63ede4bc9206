"""
Parser for the frames an animation prints on stdout.

    begin frame
    argb esc ff00ff00
    argb f1 80ffffff
    end frame
    ...
    end run
"""

import logging
from typing import Dict, Iterable, List, Optional

# Configure logging
logger = logging.getLogger(__name__)


class OutputReader:
    """Incremental state machine turning output lines into committed colors."""

    def __init__(self):
        self.colors: Dict[str, int] = {}
        self.frame_acked = False
        self.ever_acked = False
        self.ended = False
        self._buffer: Optional[List[str]] = None

    def reset(self) -> None:
        """Forget all colors and frame state for a new run."""
        self.colors = {}
        self.frame_acked = False
        self.ever_acked = False
        self.ended = False
        self._buffer = None

    def clear_colors(self) -> None:
        self.colors = {}

    def feed_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            if self.ended:
                return
            self.feed(line)

    def feed(self, line: str) -> None:
        line = line.strip()
        if self._buffer is None:
            # Only "begin frame" and "end run" mean anything between frames
            if line == 'begin frame':
                self._buffer = []
            elif line == 'end run':
                logger.debug("Animation reported end of run")
                self.ended = True
            return
        if line == 'end frame':
            self._commit(self._buffer)
            self._buffer = None
            return
        self._buffer.append(line)

    def _commit(self, lines: List[str]) -> None:
        update = {}
        for line in lines:
            split = line.split(' ')
            if len(split) != 3 or split[0] != 'argb':
                continue
            try:
                value = int(split[2], 16)
            except ValueError:
                logger.debug(f"Dropping malformed color line '{line}'")
                continue
            if not 0 <= value <= 0xffffffff:
                continue
            update[split[1]] = value
        self.colors.update(update)
        self.frame_acked = self.ever_acked = True
