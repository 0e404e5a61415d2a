"""
Reassembly of client audio into fixed-size frames.

Browsers deliver microphone audio in whatever chunk sizes their audio graph
produces. The upstream agent expects a steady stream of equally sized frames,
so every chunk is appended to a residual buffer and only whole frames leave it.
"""

from typing import List


class FrameReassembler:
    """
    Accumulates raw audio chunks and emits complete frames of `frame_bytes`.

    The remainder of any chunk that does not complete a frame stays buffered
    until later chunks complete it. Partial frames are never emitted.
    """

    def __init__(self, frame_bytes: int):
        if frame_bytes <= 0:
            raise ValueError("frame_bytes must be > 0")
        self.frame_bytes = frame_bytes
        self._residual = bytearray()

    @property
    def residual(self) -> int:
        """Number of bytes currently held back as a partial frame."""
        return len(self._residual)

    def accept(self, chunk: bytes) -> List[bytes]:
        """
        Add a chunk and return every frame it completes.

        Args:
            chunk: Raw audio bytes of any length, including zero

        Returns:
            List of frames, each exactly `frame_bytes` long, in arrival order
        """
        if chunk:
            self._residual.extend(chunk)

        frames: List[bytes] = []
        whole = len(self._residual) // self.frame_bytes
        if whole == 0:
            return frames

        end = whole * self.frame_bytes
        for offset in range(0, end, self.frame_bytes):
            frames.append(bytes(self._residual[offset:offset + self.frame_bytes]))
        del self._residual[:end]
        return frames

    def reset(self) -> None:
        """Discard any buffered partial frame."""
        self._residual.clear()
