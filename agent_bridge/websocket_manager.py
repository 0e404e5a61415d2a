"""
WebSocket connection manager for the browser voice bridge.

This module implements the server-side handling of the browser websocket,
providing the infrastructure to:
- Accept and register client connections
- Resolve the persona requested in the connection query string
- Hand each connection to its own BridgeSession
- Unregister the connection once both legs have closed

The WebSocketManager is shared by all connections but holds no per-call state
beyond the registry of active connections.
"""

import logging
import socket
from typing import Any, Callable, Optional

from fastapi import WebSocket

from agent_bridge.bot.browser_bridge import BridgeSession
from agent_bridge.config.constants import DEFAULT_PERSONA_ID, LOGGER_NAME, PERSONA_IDS
from agent_bridge.config.settings import BridgeSettings
from agent_bridge.models.connection import Connection, ConnectionManager

logger = logging.getLogger(LOGGER_NAME)


def resolve_voice_id(raw: Optional[str]) -> str:
    """Map the `voiceId` query parameter onto a known persona, defaulting to the first."""
    if raw is None:
        return DEFAULT_PERSONA_ID
    candidate = raw.strip()
    return candidate if candidate in PERSONA_IDS else DEFAULT_PERSONA_ID


class WebSocketManager:
    """Accepts browser websockets and runs one bridge session per connection."""

    def __init__(self, settings: BridgeSettings, connector: Optional[Callable[..., Any]] = None):
        self.settings = settings
        self.connection_manager = ConnectionManager()
        self._connector = connector

    async def _optimize_socket(self, websocket: WebSocket) -> None:
        """
        Disable Nagle's algorithm on the client socket when the transport exposes it.

        Args:
            websocket: The FastAPI WebSocket connection
        """
        client = websocket.client
        sock = getattr(client, "sock", None)
        if sock is None:
            return
        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            logger.debug("Optimized socket: TCP_NODELAY enabled for low latency")
        except OSError as e:
            logger.warning(f"Could not optimize socket: {e}")

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle a browser WebSocket connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        This method:
        1. Accepts the WebSocket connection
        2. Resolves the requested persona
        3. Registers the connection and runs its BridgeSession
        4. Unregisters the connection when the session ends
        """
        await websocket.accept()
        await self._optimize_socket(websocket)

        voice_id = resolve_voice_id(websocket.query_params.get("voiceId"))
        connection = Connection(voice_id=voice_id)
        self.connection_manager.add_connection(connection)
        logger.info(
            f"WebSocket connection established: {connection.connection_id} "
            f"(voiceId={voice_id}, active={len(self.connection_manager)})"
        )

        session = BridgeSession(
            websocket,
            self.settings,
            voice_id=voice_id,
            connection=connection,
            connector=self._connector,
        )
        try:
            await session.run()
        except Exception as e:
            logger.error(f"Error in WebSocket connection: {e}", exc_info=True)
        finally:
            self.connection_manager.remove_connection(connection.connection_id)
            logger.info(
                f"WebSocket connection removed: {connection.connection_id} "
                f"(active={len(self.connection_manager)})"
            )
