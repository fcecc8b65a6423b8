"""
Bounded log buffer holding the telemetry shown to the user
"""

from collections import deque
from typing import Iterable, Iterator, Tuple

from .models import LogEvent


MAX_LOGS = 1000


class LogBuffer:
    """FIFO-evicting buffer of log events, insertion order preserved.

    Not thread-safe: it is owned by a single writer running on the event loop.
    """

    def __init__(self, max_size: int = MAX_LOGS):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self.buffer = deque(maxlen=max_size)
        self.evicted = 0

    def append(self, event: LogEvent):
        """Add an event at the tail, evicting the oldest entry when full"""
        if len(self.buffer) == self.max_size:
            self.evicted += 1
        self.buffer.append(event)

    def prepend(self, events: Iterable[LogEvent]) -> int:
        """Insert history ahead of the buffered events.

        The merged sequence is trimmed from the front, so the newest entries
        survive. Returns the number of entries evicted by the merge.
        """
        merged = list(events)
        if not merged:
            return 0
        merged.extend(self.buffer)

        overflow = max(0, len(merged) - self.max_size)
        self.buffer = deque(merged[overflow:], maxlen=self.max_size)
        self.evicted += overflow
        return overflow

    def snapshot(self) -> Tuple[LogEvent, ...]:
        """Immutable copy for readers"""
        return tuple(self.buffer)

    def __iter__(self) -> Iterator[LogEvent]:
        return iter(tuple(self.buffer))

    def __len__(self):
        return len(self.buffer)
