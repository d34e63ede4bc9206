"""
Frame clock for animation sessions.

Timestamps are host milliseconds. Each step tells the animation how far it
has moved through one cycle since the previous step. Relative-time
animations never see a phase above 1: whole cycles are sent as separate
"frame 1" commands first.
"""

from typing import List


class FrameClock:

    def __init__(self, duration_ms: int = 1000, absolute_time: bool = False):
        self.duration_ms = duration_ms
        self.absolute_time = absolute_time
        self.last_frame = 0

    def reset(self, timestamp: int) -> None:
        self.last_frame = timestamp

    def advance(self, timestamp: int) -> List[str]:
        """
        Move the clock to timestamp.

        Args:
            timestamp: Host time in milliseconds

        Returns:
            The frame commands to send, in order
        """
        if timestamp <= self.last_frame:
            # Never run backwards: restart from the new timestamp
            self.last_frame = timestamp
        delta = (timestamp - self.last_frame) / float(self.duration_ms)
        commands = []
        if not self.absolute_time:
            while delta > 1.:
                commands.append('frame 1')
                delta -= 1.
        if delta < 0.:
            delta = 0.
        self.last_frame = timestamp
        commands.append(f"frame {delta:g}")
        return commands
