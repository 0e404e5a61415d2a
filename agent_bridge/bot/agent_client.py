import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, Optional

import websockets
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedError,
    ConnectionClosedOK,
    InvalidHandshake,
    InvalidStatus,
)

from agent_bridge.config.constants import (
    AGENT_MESSAGE_KEEPALIVE,
    HANDSHAKE_BODY_EXCERPT,
    LOGGER_NAME,
)
from agent_bridge.config.settings import BridgeSettings
from agent_bridge.handlers.agent_events import classify
from agent_bridge.models.agent_settings import SessionConfiguration
from agent_bridge.models.connection import Connection, SessionPhase
from agent_bridge.models.events import (
    AudioPayload,
    ConfigurationAcknowledgedEvent,
    NormalizedEvent,
    WelcomeEvent,
)

logger = logging.getLogger(LOGGER_NAME)

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio bursts
WS_PING_INTERVAL = 20

EventHandler = Callable[[NormalizedEvent], Awaitable[None]]
AudioHandler = Callable[[bytes], Awaitable[None]]
NotifyHandler = Callable[[], Awaitable[None]]
FailureHandler = Callable[[str], Awaitable[None]]


class AgentSessionController:
    """
    Client for one upstream voice agent session over WebSocket.

    Owns the upstream socket and its lifecycle: handshake, the one-time
    Settings message, readiness on acknowledgment, keepalives and close.
    Everything it receives is classified and handed to the orchestrator
    through the registered handlers.
    """

    def __init__(
        self,
        settings: BridgeSettings,
        configuration: SessionConfiguration,
        connection: Connection,
        connector: Optional[Callable[..., Any]] = None,
    ):
        self.settings = settings
        self.configuration = configuration
        self.connection = connection
        self.ws = None
        self._connector = connector
        self._recv_task: Optional[asyncio.Task] = None
        self._keepalive_task: Optional[asyncio.Task] = None
        self._config_sent = False
        self._ready = False
        self._is_closing = False

        self._event_handler: Optional[EventHandler] = None
        self._audio_handler: Optional[AudioHandler] = None
        self._open_handler: Optional[NotifyHandler] = None
        self._ready_handler: Optional[NotifyHandler] = None
        self._closed_handler: Optional[NotifyHandler] = None
        self._failure_handler: Optional[FailureHandler] = None

    @property
    def ready(self) -> bool:
        return self._ready

    def set_handlers(
        self,
        on_event: Optional[EventHandler] = None,
        on_audio: Optional[AudioHandler] = None,
        on_open: Optional[NotifyHandler] = None,
        on_ready: Optional[NotifyHandler] = None,
        on_closed: Optional[NotifyHandler] = None,
        on_failure: Optional[FailureHandler] = None,
    ) -> None:
        """
        Register the orchestrator's callbacks.

        Args:
            on_event: Called with every normalized control event
            on_audio: Called with every agent speech frame
            on_open: Called once the handshake completes
            on_ready: Called once when the configuration is acknowledged
            on_closed: Called when the upstream closes normally
            on_failure: Called once with a client-visible message on any fatal error
        """
        self._event_handler = on_event
        self._audio_handler = on_audio
        self._open_handler = on_open
        self._ready_handler = on_ready
        self._closed_handler = on_closed
        self._failure_handler = on_failure

    def replace_configuration(self, configuration: SessionConfiguration) -> bool:
        """Swap the pending configuration; refused once it has been sent."""
        if self._config_sent:
            return False
        self.configuration = configuration
        return True

    async def connect(self) -> bool:
        """
        Open the upstream socket, send the configuration and start the loops.

        Returns:
            bool: True if the connection was opened, False otherwise
        """
        if self._is_closing:
            logger.warning("Cannot connect - controller is closing")
            return False

        self.connection.phase = SessionPhase.CONNECTING
        url = self.settings.agent_url
        headers = {"Authorization": f"Token {self.settings.api_key}"}
        # Looked up at call time so tests can patch websockets.connect
        connector = self._connector or websockets.connect

        try:
            logger.info(f"Connecting to voice agent for connection: {self.connection.connection_id}")
            logger.debug(f"WebSocket URL: {url}")
            connection_start = time.time()
            self.ws = await asyncio.wait_for(
                connector(
                    url,
                    additional_headers=headers,
                    max_size=WS_MAX_SIZE,
                    ping_interval=WS_PING_INTERVAL,
                    compression=None,
                ),
                timeout=self.settings.connect_timeout_s,
            )
            logger.debug(f"Upstream connection established in {time.time() - connection_start:.2f} seconds")
        except InvalidStatus as e:
            response = e.response
            body = (response.body or b"")[:HANDSHAKE_BODY_EXCERPT]
            logger.error(
                f"Voice agent rejected handshake: HTTP {response.status_code} "
                f"headers={dict(response.headers)} body={body.decode('utf-8', errors='replace')!r}"
            )
            await self._fail(f"Upstream handshake failed: HTTP {response.status_code}")
            return False
        except asyncio.TimeoutError:
            logger.error(f"Timeout while connecting to voice agent (after {self.settings.connect_timeout_s}s)")
            await self._fail("Upstream handshake timed out")
            return False
        except (InvalidHandshake, OSError) as e:
            logger.error(f"Failed to connect to voice agent: {e}", exc_info=True)
            await self._fail(f"Upstream connection failed: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error connecting to voice agent: {e}", exc_info=True)
            await self._fail(f"Upstream connection failed: {e}")
            return False

        if self._is_closing:
            # The client went away while the handshake was in flight
            await self._close_socket()
            return False

        self.connection.phase = SessionPhase.OPEN
        logger.info(f"Connected to voice agent for connection: {self.connection.connection_id}")
        try:
            if self._open_handler:
                await self._open_handler()

            self._recv_task = asyncio.create_task(self._recv_loop())
            self._keepalive_task = asyncio.create_task(self._keepalive())
            await self.send_configuration()
        except Exception as e:
            logger.error(f"Error starting voice agent session: {e}", exc_info=True)
            await self._fail(f"Upstream error: {e}")
            return False
        return True

    async def send_configuration(self) -> bool:
        """
        Send the Settings message exactly once per connection.

        Returns:
            bool: True if this call sent it, False if it was already sent or could not be
        """
        if self._config_sent or self.ws is None or self._is_closing:
            return False
        # Flag first: a Welcome arriving mid-send must not trigger a second send
        self._config_sent = True
        if not await self._send_text(self.configuration.to_wire()):
            return False
        if self.connection.phase == SessionPhase.OPEN:
            self.connection.phase = SessionPhase.CONFIG_SENT
        logger.info(
            f"Sent agent configuration (voice={self.configuration.voice}) "
            f"for connection: {self.connection.connection_id}"
        )
        return True

    async def send_audio(self, frame: bytes) -> bool:
        """
        Send one audio frame upstream.

        Frames are refused until the configuration has been acknowledged.

        Returns:
            bool: True if the frame was sent
        """
        if not self._ready or self._is_closing or self.ws is None:
            return False
        try:
            await self.ws.send(frame)
        except ConnectionClosed as e:
            logger.debug(f"Dropping audio frame, upstream closed: {e}")
            return False
        self.connection.frames_sent += 1
        return True

    async def _send_text(self, payload: str) -> bool:
        try:
            await self.ws.send(payload)
            return True
        except ConnectionClosed as e:
            logger.debug(f"Could not send control message, upstream closed: {e}")
            return False

    async def _recv_loop(self) -> None:
        """Receive upstream frames until the socket closes or the controller shuts down."""
        try:
            while not self._is_closing:
                message = await self.ws.recv()
                await self._dispatch(message)
        except ConnectionClosedOK as e:
            if self._is_closing:
                return
            logger.info(f"Voice agent closed the connection normally: {e}")
            self.connection.phase = SessionPhase.CLOSING
            if self._closed_handler:
                await self._closed_handler()
        except ConnectionClosedError as e:
            if self._is_closing:
                return
            code = e.rcvd.code if e.rcvd else None
            reason = e.rcvd.reason if e.rcvd else ""
            logger.warning(f"Voice agent connection closed unexpectedly: code={code} reason={reason}")
            await self._fail(f"Upstream connection closed unexpectedly (code {code})")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in voice agent receive loop: {e}", exc_info=True)
            await self._fail(f"Upstream error: {e}")

    async def _dispatch(self, message) -> None:
        item = classify(message)
        if item is None:
            return

        if isinstance(item, AudioPayload):
            self.connection.agent_bytes_out += len(item.data)
            if self._audio_handler:
                await self._audio_handler(item.data)
            return

        if isinstance(item, WelcomeEvent):
            logger.info(f"Voice agent welcome received for connection: {self.connection.connection_id}")
            await self.send_configuration()
            return

        if isinstance(item, ConfigurationAcknowledgedEvent):
            if self._ready:
                logger.debug("Ignoring repeated configuration acknowledgment")
                return
            self._ready = True
            self.connection.phase = SessionPhase.READY
            logger.info(f"Voice agent settings applied for connection: {self.connection.connection_id}")
            if self._event_handler:
                await self._event_handler(item)
            if self._ready_handler:
                await self._ready_handler()
            return

        if self._event_handler:
            await self._event_handler(item)

    async def _keepalive(self) -> None:
        """Send a KeepAlive control message at a fixed interval while open."""
        payload = json.dumps({"type": AGENT_MESSAGE_KEEPALIVE})
        while not self._is_closing:
            await asyncio.sleep(self.settings.keepalive_interval_s)
            if self._is_closing or not await self._send_text(payload):
                break
            logger.debug(f"Sent keepalive for connection: {self.connection.connection_id}")

    async def _fail(self, message: str) -> None:
        """Move to Failed and report once; later failures are ignored."""
        if self.connection.phase.terminal or self._is_closing:
            return
        self.connection.phase = SessionPhase.FAILED
        self._ready = False
        logger.error(f"Voice agent session failed for connection {self.connection.connection_id}: {message}")
        if self._failure_handler:
            await self._failure_handler(message)

    async def _close_socket(self) -> None:
        if self.ws is None:
            return
        try:
            await asyncio.wait_for(self.ws.close(), timeout=self.settings.close_grace_s)
        except asyncio.TimeoutError:
            logger.warning(f"Voice agent socket did not close within {self.settings.close_grace_s}s")
        except (ConnectionClosed, OSError) as e:
            logger.debug(f"Error closing voice agent socket: {e}")

    async def close(self) -> None:
        """
        Close the upstream socket and cancel the receive and keepalive tasks.

        Safe to call more than once and from inside the receive loop.
        """
        if self._is_closing:
            return
        logger.info(f"Closing voice agent session for connection: {self.connection.connection_id}")
        self._is_closing = True
        self._ready = False
        if not self.connection.phase.terminal:
            self.connection.phase = SessionPhase.CLOSING

        current = asyncio.current_task()
        pending = []
        for task in (self._recv_task, self._keepalive_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
                pending.append(task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        await self._close_socket()

        if self.connection.phase != SessionPhase.FAILED:
            self.connection.phase = SessionPhase.CLOSED
        logger.info(f"Voice agent session closed for connection: {self.connection.connection_id}")

