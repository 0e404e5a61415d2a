"""
Audio flow-control primitives for the bridge.

Key components:
- framing: FrameReassembler turns arbitrarily chunked client audio into
  fixed-duration frames, holding back any partial frame.
- preroll: PrerollBuffer holds frames captured before the upstream agent is
  ready, evicting the oldest frame when full.
"""

from agent_bridge.audio.framing import FrameReassembler
from agent_bridge.audio.preroll import PrerollBuffer

__all__ = ["FrameReassembler", "PrerollBuffer"]
