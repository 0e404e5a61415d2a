"""
Bridge module connecting a browser audio client with the hosted voice agent.

One BridgeSession is created per accepted client websocket. It owns both legs
of the conversation: client microphone audio is reassembled into fixed frames
and sent (or buffered until the agent is ready), agent speech is relayed back
verbatim, and upstream control events are translated into the small JSON
vocabulary the browser understands.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from fastapi import WebSocket, WebSocketDisconnect

from agent_bridge.audio.framing import FrameReassembler
from agent_bridge.audio.preroll import PrerollBuffer
from agent_bridge.bot.agent_client import AgentSessionController
from agent_bridge.config.constants import (
    AGENT_EVENT_AGENT_STOPPED_SPEAKING,
    CLOSE_INTERNAL_ERROR,
    CLOSE_NORMAL,
    CLOSE_POLICY_VIOLATION,
    LOGGER_NAME,
    PERSONA_IDS,
)
from agent_bridge.config.settings import BridgeSettings
from agent_bridge.handlers.client_handlers import handle_client_text
from agent_bridge.handlers.intake_handlers import ingest_utterance
from agent_bridge.models.agent_settings import build_session_configuration
from agent_bridge.models.client_messages import (
    ErrorMessage,
    OutgoingClientMessage,
    SettingsStatusMessage,
    StateMessage,
    StatusMessage,
    TranscriptMessage,
)
from agent_bridge.models.connection import Connection, SessionPhase
from agent_bridge.models.events import (
    AgentState,
    ConfigurationAcknowledgedEvent,
    ErrorEvent,
    NormalizedEvent,
    SpeakerRole,
    StateChangedEvent,
    TranscriptFragmentEvent,
    WarningEvent,
)
from agent_bridge.models.intake import ShadowIntakeRecord

logger = logging.getLogger(LOGGER_NAME)

METER_INTERVAL_S = 1.0


class BridgeSession:
    """
    Bidirectional bridge between one browser websocket and one voice agent session.

    This class handles:
    - Validating credentials and opening the upstream session
    - Framing, buffering and gating client microphone audio
    - Relaying agent speech and mapping agent events to client messages
    - Shadow intake extraction from user transcripts
    - A single idempotent teardown of both legs
    """

    def __init__(
        self,
        websocket: WebSocket,
        settings: BridgeSettings,
        voice_id: Optional[str] = None,
        connection: Optional[Connection] = None,
        connector: Optional[Callable[..., Any]] = None,
    ):
        self.websocket = websocket
        self.settings = settings
        self.voice_id = voice_id
        self.connection = connection or Connection(voice_id=voice_id)
        self.controller: Optional[AgentSessionController] = None
        self.intake = ShadowIntakeRecord()

        options = settings.options
        self.reassembler = FrameReassembler(options.frame_bytes)
        self.preroll = PrerollBuffer(options.preroll_max_frames)
        self._connector = connector

        self._audio_ready = False
        self._gate_enabled = options.gate_mic_during_greeting and bool(settings.greeting)
        self._mic_gated = False
        self._closing = False
        self._closed = asyncio.Event()
        self._client_closed = False
        self._client_disconnected = False

        self._mic_bytes = 0
        self._tts_bytes = 0

        self._pump_task: Optional[asyncio.Task] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._meter_task: Optional[asyncio.Task] = None
        self._gate_task: Optional[asyncio.Task] = None

    @property
    def mic_gated(self) -> bool:
        return self._mic_gated

    def _create_upstream(self) -> AgentSessionController:
        """
        Build the upstream controller for this connection.

        Raises:
            ValueError: If no voice agent credential is configured
        """
        if not self.settings.api_key:
            raise ValueError("Voice agent API key is not configured (set DEEPGRAM_API_KEY)")

        configuration = build_session_configuration(self.settings, self.voice_id)
        controller = AgentSessionController(
            self.settings, configuration, self.connection, connector=self._connector
        )
        controller.set_handlers(
            on_event=self._on_agent_event,
            on_audio=self._on_agent_audio,
            on_open=self._on_upstream_open,
            on_ready=self._on_upstream_ready,
            on_closed=self._on_upstream_closed,
            on_failure=self._on_upstream_failure,
        )
        return controller

    async def run(self) -> None:
        """
        Drive the session until either leg closes.

        The client socket must already be accepted. Returns once both legs are
        closed and the final intake snapshot has been logged.
        """
        connection_id = self.connection.connection_id
        try:
            self.controller = self._create_upstream()
        except ValueError as e:
            logger.error(f"Configuration error for connection {connection_id}: {e}")
            self.connection.phase = SessionPhase.FAILED
            await self.send_client_message(ErrorMessage(message=str(e)))
            await self._close_client(CLOSE_POLICY_VIOLATION, "configuration error")
            self._closed.set()
            return

        logger.info(f"Bridge session started for connection: {connection_id} (voice {self.voice_id})")
        self._meter_task = asyncio.create_task(self._meter_loop())
        self._connect_task = asyncio.create_task(self.controller.connect())
        self._pump_task = asyncio.create_task(self._pump_client())

        code, reason = CLOSE_NORMAL, "client closed"
        try:
            await asyncio.wait({self._pump_task})
            if not self._pump_task.cancelled() and self._pump_task.exception() is not None:
                error = self._pump_task.exception()
                logger.error(f"Error in client receive loop: {error}", exc_info=error)
                code, reason = CLOSE_INTERNAL_ERROR, "bridge error"
        finally:
            await self.teardown(code, reason)
            await self._closed.wait()

    async def _pump_client(self) -> None:
        """Receive client frames until the client disconnects or the session closes."""
        while not self._closing:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                self._client_disconnected = True
                logger.info(
                    f"Client disconnected (code {message.get('code')}) "
                    f"for connection: {self.connection.connection_id}"
                )
                return

            if message.get("bytes") is not None:
                await self.handle_client_audio(message["bytes"])
            elif message.get("text") is not None:
                await handle_client_text(message["text"], self)

    async def handle_client_audio(self, chunk: bytes) -> None:
        """Reassemble a client audio chunk into frames and route each one."""
        if self._closing:
            return
        self.connection.client_bytes_in += len(chunk)
        self._mic_bytes += len(chunk)
        for frame in self.reassembler.accept(chunk):
            await self._route_frame(frame)

    async def _route_frame(self, frame: bytes) -> None:
        if self._closing or self._mic_gated:
            self.connection.frames_dropped += 1
            return

        if self._audio_ready:
            if not await self.controller.send_audio(frame):
                self.connection.frames_dropped += 1
            return

        if self.settings.options.preroll_policy == "buffer":
            self.connection.frames_buffered += 1
            if self.preroll.push(frame):
                self.connection.frames_evicted += 1
                if self.connection.frames_evicted == 1:
                    logger.warning(
                        f"Preroll full ({self.preroll.max_frames} frames), evicting oldest audio "
                        f"for connection: {self.connection.connection_id}"
                    )
        else:
            self.connection.frames_dropped += 1

    def apply_voice(self, voice_id: str) -> bool:
        """
        Switch persona before the upstream has been configured.

        Returns:
            bool: True if the new voice will be used for this session
        """
        if voice_id not in PERSONA_IDS or self.controller is None:
            return False
        configuration = build_session_configuration(self.settings, voice_id)
        if not self.controller.replace_configuration(configuration):
            logger.info(f"Voice change to {voice_id} ignored, agent already configured")
            return False
        self.voice_id = voice_id
        self.connection.voice_id = voice_id
        logger.info(f"Voice set to persona {voice_id} ({configuration.voice})")
        return True

    async def send_client_message(self, message: OutgoingClientMessage) -> bool:
        """Send a JSON control message to the client; a closed client is not an error."""
        if self._client_closed or self._client_disconnected:
            return False
        try:
            await self.websocket.send_text(message.model_dump_json(exclude_none=True))
            return True
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.debug(f"Could not send {message.type} to client: {e}")
            return False

    async def _on_agent_audio(self, data: bytes) -> None:
        if self._client_closed or self._client_disconnected:
            return
        self._tts_bytes += len(data)
        try:
            await self.websocket.send_bytes(data)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.debug(f"Could not send agent audio to client: {e}")

    async def _on_upstream_open(self) -> None:
        await self.send_client_message(StateMessage(state=AgentState.CONNECTED))

    async def _on_upstream_ready(self) -> None:
        """Flush the preroll upstream, then let live frames through."""
        drained = await self.preroll.drain_into(self.controller.send_audio)
        self._audio_ready = True
        logger.info(
            f"Voice agent ready, drained {drained} preroll frames "
            f"for connection: {self.connection.connection_id}"
        )
        if self._gate_enabled:
            self._mic_gated = True
            self._gate_task = asyncio.create_task(self._release_gate_after_timeout())
            logger.info("Microphone gated until the greeting finishes")

    async def _release_gate_after_timeout(self) -> None:
        await asyncio.sleep(self.settings.options.greeting_gate_timeout_s)
        if self._mic_gated:
            logger.info("Greeting gate timed out, releasing microphone")
            self._mic_gated = False

    def _release_gate(self) -> None:
        if not self._mic_gated:
            return
        self._mic_gated = False
        if self._gate_task is not None and not self._gate_task.done():
            self._gate_task.cancel()
        logger.info("Greeting finished, releasing microphone")

    async def _on_agent_event(self, event: NormalizedEvent) -> None:
        """Translate one normalized agent event into client messages."""
        if isinstance(event, ConfigurationAcknowledgedEvent):
            voice = self.controller.configuration.voice if self.controller else None
            await self.send_client_message(SettingsStatusMessage(applied=True, voice=voice))
            await self.send_client_message(StateMessage(state=AgentState.LISTENING))

        elif isinstance(event, StateChangedEvent):
            if event.source == AGENT_EVENT_AGENT_STOPPED_SPEAKING:
                self._release_gate()
            await self.send_client_message(StateMessage(state=event.state))

        elif isinstance(event, TranscriptFragmentEvent):
            if event.role == SpeakerRole.USER and event.is_final:
                ingest_utterance(self.intake, event.text)
            await self.send_client_message(
                TranscriptMessage(role=event.role, text=event.text, partial=not event.is_final)
            )

        elif isinstance(event, WarningEvent):
            logger.warning(f"Voice agent warning: {event.message}")
            await self.send_client_message(StatusMessage(message=event.message, level="warning"))

        elif isinstance(event, ErrorEvent):
            logger.error(f"Voice agent error ({event.source}): {event.message}")
            await self.send_client_message(ErrorMessage(message=event.message))

    async def _on_upstream_closed(self) -> None:
        await self.teardown(CLOSE_NORMAL, "agent closed")

    async def _on_upstream_failure(self, message: str) -> None:
        await self.send_client_message(ErrorMessage(message=message))
        await self.teardown(CLOSE_INTERNAL_ERROR, "upstream failure")

    async def _meter_loop(self) -> None:
        """Log mic and agent audio throughput once per second while audio flows."""
        while not self._closing:
            await asyncio.sleep(METER_INTERVAL_S)
            if self._mic_bytes or self._tts_bytes:
                logger.debug(
                    f"meter connection={self.connection.connection_id} "
                    f"mic_bytes_per_s={self._mic_bytes} tts_bytes_per_s={self._tts_bytes}"
                )
                self._mic_bytes = 0
                self._tts_bytes = 0

    async def _close_client(self, code: int, reason: str) -> None:
        if self._client_closed:
            return
        self._client_closed = True
        if self._client_disconnected:
            return
        try:
            await self.websocket.close(code=code, reason=reason)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.debug(f"Error closing client websocket: {e}")

    async def teardown(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """
        Close both legs exactly once.

        Cancels timers, tells the client it is disconnected, closes the
        upstream within the grace period, closes the client and logs the
        final intake snapshot. Later calls return immediately.
        """
        if self._closing:
            return
        self._closing = True
        connection_id = self.connection.connection_id
        logger.info(f"Tearing down connection {connection_id}: code={code} reason={reason}")

        current = asyncio.current_task()
        pending = []
        for task in (self._meter_task, self._gate_task, self._connect_task, self._pump_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
                pending.append(task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        await self.send_client_message(StateMessage(state=AgentState.DISCONNECTED))

        if self.controller is not None:
            await self.controller.close()

        await self._close_client(code, reason)
        self.preroll.clear()

        if self.connection.phase != SessionPhase.FAILED:
            self.connection.phase = SessionPhase.CLOSED

        logger.info(f"intake_final connection={connection_id} snapshot={self.intake.snapshot()}")
        logger.info(f"Connection {connection_id} closed: {self.connection.stats()}")
        self._closed.set()
