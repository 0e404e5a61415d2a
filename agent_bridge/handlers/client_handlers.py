"""
Handles text control messages sent by the browser client.

Client text is never forwarded upstream. Under the `interpret` policy the
bridge understands `start` (optionally carrying a persona) and `stop`; any
other well-formed message is acknowledged with a status event so the client
knows it arrived. Malformed text is discarded silently.
"""

import json
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from agent_bridge.config.constants import (
    CLIENT_MESSAGE_START,
    CLIENT_MESSAGE_STOP,
    CLOSE_NORMAL,
    LOGGER_NAME,
)
from agent_bridge.models.client_messages import (
    ClientMessage,
    StartMessage,
    StatusMessage,
    StopMessage,
)

if TYPE_CHECKING:
    from agent_bridge.bot.browser_bridge import BridgeSession

logger = logging.getLogger(LOGGER_NAME)

HandlerFunc = Callable[[ClientMessage, "BridgeSession"], Awaitable[None]]


def parse_client_text(text: str) -> Optional[ClientMessage]:
    """
    Parse a client text frame into a typed message.

    Returns:
        StartMessage, StopMessage, a bare ClientMessage for other types, or
        None if the frame is not a JSON object with a usable shape
    """
    try:
        payload = json.loads(text)
    except (TypeError, json.JSONDecodeError):
        logger.debug("Discarding malformed client text frame")
        return None

    if not isinstance(payload, dict):
        logger.debug("Discarding non-object client text frame")
        return None

    message_type = payload.get("type")
    try:
        if message_type == CLIENT_MESSAGE_START:
            return StartMessage(**payload)
        if message_type == CLIENT_MESSAGE_STOP:
            return StopMessage(**payload)
        return ClientMessage(type=str(message_type) if message_type is not None else "unknown")
    except ValidationError as e:
        logger.warning(f"Client message validation error: {e}")
        return None


async def handle_start(message: StartMessage, session: "BridgeSession") -> None:
    """Apply the requested persona if the upstream has not been configured yet."""
    applied = False
    if message.voiceId is not None:
        applied = session.apply_voice(message.voiceId)
    detail = f" (voice {message.voiceId})" if applied else ""
    await session.send_client_message(StatusMessage(message=f"start received{detail}"))


async def handle_stop(message: StopMessage, session: "BridgeSession") -> None:
    logger.info(f"Client requested stop for connection: {session.connection.connection_id}")
    await session.teardown(CLOSE_NORMAL, "client stop")


async def handle_unknown(message: ClientMessage, session: "BridgeSession") -> None:
    logger.debug(f"Acknowledging client message of type: {message.type}")
    await session.send_client_message(StatusMessage(message=f"{message.type} received"))


CLIENT_HANDLERS: Dict[str, HandlerFunc] = {
    CLIENT_MESSAGE_START: handle_start,
    CLIENT_MESSAGE_STOP: handle_stop,
}


async def handle_client_text(text: str, session: "BridgeSession") -> None:
    """
    Route one client text frame according to the session's text policy.

    Args:
        text: Raw text frame from the browser
        session: The bridge session that received it
    """
    if session.settings.options.client_text_policy == "ignore":
        return

    message = parse_client_text(text)
    if message is None:
        return

    handler = CLIENT_HANDLERS.get(message.type, handle_unknown)
    await handler(message, session)
