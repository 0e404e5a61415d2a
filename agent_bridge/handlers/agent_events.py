"""
Classifies messages arriving from the upstream voice agent.

Upstream frames are either raw agent speech or JSON control events. Binary
frames are speech unless they start with `{`, in which case they are JSON sent
as a binary frame. JSON events are folded onto the normalized taxonomy in
agent_bridge.models.events; anything the bridge does not use is dropped here.
"""

import json
import logging
from typing import Any, Dict, Optional, Union

from agent_bridge.config.constants import (
    AGENT_EVENT_AGENT_ERROR,
    AGENT_EVENT_AGENT_STARTED_SPEAKING,
    AGENT_EVENT_AGENT_STOPPED_SPEAKING,
    AGENT_EVENT_ERROR,
    AGENT_EVENT_SETTINGS_APPLIED,
    AGENT_EVENT_USER_STARTED_SPEAKING,
    AGENT_EVENT_WARNING,
    AGENT_EVENT_WELCOME,
    LOGGER_NAME,
)
from agent_bridge.models.events import (
    AgentState,
    AudioPayload,
    ConfigurationAcknowledgedEvent,
    ErrorEvent,
    NormalizedEvent,
    SpeakerRole,
    StateChangedEvent,
    TranscriptFragmentEvent,
    WarningEvent,
    WelcomeEvent,
)

logger = logging.getLogger(LOGGER_NAME)

JSON_OBJECT_MARKER = 0x7B  # "{"

# Precedence order for fields the upstream names inconsistently
ROLE_FIELDS = ("role", "speaker", "actor")
TEXT_FIELDS = ("content", "text", "transcript", "message")
ERROR_FIELDS = ("description", "message")

# Transcript-bearing tags -> (default role when no role field, final by default)
TRANSCRIPT_TAGS: Dict[str, tuple] = {
    "ConversationText": (SpeakerRole.USER, True),
    "History": (SpeakerRole.USER, True),
    "Transcript": (SpeakerRole.USER, False),
    "UserTranscript": (SpeakerRole.USER, False),
    "UserResponse": (SpeakerRole.USER, True),
    "AddUserMessage": (SpeakerRole.USER, True),
    "PartialTranscript": (SpeakerRole.USER, False),
    "AddPartialTranscript": (SpeakerRole.USER, False),
    "AddAssistantMessage": (SpeakerRole.AGENT, True),
    "AgentTranscript": (SpeakerRole.AGENT, False),
    "AgentResponse": (SpeakerRole.AGENT, True),
}

STATE_TAGS: Dict[str, AgentState] = {
    AGENT_EVENT_USER_STARTED_SPEAKING: AgentState.LISTENING,
    AGENT_EVENT_AGENT_STARTED_SPEAKING: AgentState.SPEAKING,
    AGENT_EVENT_AGENT_STOPPED_SPEAKING: AgentState.LISTENING,
}

ERROR_TAGS = (AGENT_EVENT_AGENT_ERROR, AGENT_EVENT_ERROR)

Classified = Union[NormalizedEvent, AudioPayload, None]


def is_audio_payload(message: Union[str, bytes, bytearray, memoryview]) -> bool:
    """
    Decide whether an upstream frame is agent speech.

    A frame is speech only if it is binary and does not begin with the JSON
    object marker. Text frames are always control events; empty frames are
    neither.
    """
    if isinstance(message, str):
        return False
    data = bytes(message)
    return bool(data) and data[0] != JSON_OBJECT_MARKER


def first_field(payload: Dict[str, Any], fields: tuple) -> str:
    """Return the first present, non-null field in precedence order, as stripped text."""
    for name in fields:
        value = payload.get(name)
        if value is not None:
            return str(value).strip()
    return ""


def normalize_role(payload: Dict[str, Any], default: SpeakerRole = SpeakerRole.USER) -> SpeakerRole:
    """Bucket role/speaker/actor into User or Agent by substring match."""
    raw = first_field(payload, ROLE_FIELDS).lower()
    if not raw:
        return default
    if "agent" in raw or "assistant" in raw:
        return SpeakerRole.AGENT
    return SpeakerRole.USER


def normalize_is_final(payload: Dict[str, Any], default: bool) -> bool:
    if payload.get("final") is True or payload.get("is_final") is True:
        return True
    if payload.get("status") == "final":
        return True
    if "final" in payload or "is_final" in payload:
        return False
    return default


def parse_control_message(message: Union[str, bytes]) -> Optional[Dict[str, Any]]:
    """Parse a JSON control frame, returning None for anything that is not a JSON object."""
    try:
        text = message.decode("utf-8") if isinstance(message, (bytes, bytearray)) else message
        payload = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.debug("Discarding malformed control message from agent")
        return None
    if not isinstance(payload, dict):
        logger.debug("Discarding non-object control message from agent")
        return None
    return payload


def normalize_event(payload: Dict[str, Any]) -> Optional[NormalizedEvent]:
    """
    Map one parsed upstream event onto the normalized taxonomy.

    Args:
        payload: Parsed JSON object from the upstream agent

    Returns:
        The normalized event, or None if the bridge does not use this event
    """
    tag = str(payload.get("type", ""))

    if tag == AGENT_EVENT_WELCOME:
        return WelcomeEvent(source=tag)

    if tag == AGENT_EVENT_SETTINGS_APPLIED:
        return ConfigurationAcknowledgedEvent(source=tag)

    if tag in TRANSCRIPT_TAGS:
        default_role, default_final = TRANSCRIPT_TAGS[tag]
        text = first_field(payload, TEXT_FIELDS)
        if not text:
            return None
        return TranscriptFragmentEvent(
            source=tag,
            role=normalize_role(payload, default_role),
            text=text,
            is_final=normalize_is_final(payload, default_final),
        )

    if tag in STATE_TAGS:
        return StateChangedEvent(source=tag, state=STATE_TAGS[tag])

    if tag == AGENT_EVENT_WARNING:
        return WarningEvent(source=tag, message=first_field(payload, ERROR_FIELDS) or "unknown")

    if tag in ERROR_TAGS:
        return ErrorEvent(source=tag, message=first_field(payload, ERROR_FIELDS) or "unknown")

    logger.debug(f"Ignoring agent event of type: {tag or 'unknown'}")
    return None


def classify(message: Union[str, bytes]) -> Classified:
    """
    Classify a raw upstream frame.

    Returns:
        AudioPayload for agent speech, a normalized event for control messages
        the bridge uses, or None for malformed and unused messages
    """
    if not message:
        return None
    if is_audio_payload(message):
        return AudioPayload(data=bytes(message))

    payload = parse_control_message(message)
    if payload is None:
        return None
    return normalize_event(payload)
