"""
Bounded FIFO for audio captured before the upstream agent is ready.

Live voice favours recency over completeness: when the buffer is full the
oldest frame is evicted to make room for the newest one.
"""

from collections import deque
from typing import Awaitable, Callable, Deque


class PrerollBuffer:
    """Holds at most `max_frames` frames, dropping the oldest on overflow."""

    def __init__(self, max_frames: int):
        if max_frames <= 0:
            raise ValueError("max_frames must be > 0")
        self.max_frames = max_frames
        self._frames: Deque[bytes] = deque()
        self.evicted = 0
        self.drained = False

    def __len__(self) -> int:
        return len(self._frames)

    def push(self, frame: bytes) -> bool:
        """
        Append a frame to the tail of the buffer.

        Returns:
            True if the oldest frame was evicted to make room
        """
        self._frames.append(frame)
        if len(self._frames) > self.max_frames:
            self._frames.popleft()
            self.evicted += 1
            return True
        return False

    async def drain_into(self, sink: Callable[[bytes], Awaitable[object]]) -> int:
        """
        Send every queued frame to `sink` in original order, leaving the buffer empty.

        Frames pushed while the drain is awaiting the sink are sent by the same
        drain, after the frames that were already queued.

        Returns:
            Number of frames handed to the sink
        """
        sent = 0
        while self._frames:
            frame = self._frames.popleft()
            await sink(frame)
            sent += 1
        self.drained = True
        return sent

    def clear(self) -> None:
        self._frames.clear()
