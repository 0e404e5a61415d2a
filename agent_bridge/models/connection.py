"""
Connection state management for bridge sessions.

A Connection pairs one client websocket with one upstream agent socket and
carries the counters used for metering. The ConnectionManager is a registry of
active connections, read by the health endpoint.
"""

import time
import uuid
from enum import Enum
from typing import Dict, Optional


class SessionPhase(str, Enum):
    """Lifecycle of the upstream leg of a connection."""

    CONNECTING = "connecting"
    OPEN = "open"
    CONFIG_SENT = "config_sent"
    READY = "ready"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SessionPhase.CLOSED, SessionPhase.FAILED)


class Connection:
    """Identity, lifecycle phase and byte/frame counters of one bridge session."""

    def __init__(self, voice_id: Optional[str] = None, connection_id: Optional[str] = None):
        self.connection_id = connection_id or str(uuid.uuid4())
        self.created_at = time.time()
        self.voice_id = voice_id
        self.phase = SessionPhase.CONNECTING

        self.client_bytes_in = 0
        self.agent_bytes_out = 0
        self.frames_sent = 0
        self.frames_buffered = 0
        self.frames_evicted = 0
        self.frames_dropped = 0

    def stats(self) -> Dict[str, object]:
        return {
            "connection_id": self.connection_id,
            "phase": self.phase.value,
            "voice_id": self.voice_id,
            "duration_s": round(time.time() - self.created_at, 3),
            "client_bytes_in": self.client_bytes_in,
            "agent_bytes_out": self.agent_bytes_out,
            "frames_sent": self.frames_sent,
            "frames_buffered": self.frames_buffered,
            "frames_evicted": self.frames_evicted,
            "frames_dropped": self.frames_dropped,
        }


class ConnectionManager:
    """
    Registry of active bridge connections.

    Each connection's state is owned by its own session; the registry only
    holds references so the process can report how many are live.
    """

    def __init__(self):
        """Initialize an empty dictionary of active connections."""
        self.active_connections: Dict[str, Connection] = {}

    def add_connection(self, connection: Connection) -> None:
        self.active_connections[connection.connection_id] = connection

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        return self.active_connections.get(connection_id)

    def remove_connection(self, connection_id: str) -> None:
        self.active_connections.pop(connection_id, None)

    def get_all_connections(self) -> Dict[str, Connection]:
        return self.active_connections

    def __len__(self) -> int:
        return len(self.active_connections)
