"""
Normalized event taxonomy for upstream agent messages.

The upstream agent speaks many overlapping event shapes. Every message the
bridge cares about is folded onto one of the models below before anything else
looks at it; the originating wire tag is kept in `source` for logging.
"""

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, Field


class SpeakerRole(str, Enum):
    USER = "User"
    AGENT = "Agent"


class AgentState(str, Enum):
    CONNECTED = "Connected"
    LISTENING = "Listening"
    SPEAKING = "Speaking"
    DISCONNECTED = "Disconnected"


class BaseEvent(BaseModel):
    """Base model for all normalized events."""

    kind: str = Field(..., description="Normalized event variant")
    source: str = Field("", description="Wire tag the event was built from")


class WelcomeEvent(BaseEvent):
    kind: Literal["welcome"] = "welcome"


class ConfigurationAcknowledgedEvent(BaseEvent):
    kind: Literal["configuration_acknowledged"] = "configuration_acknowledged"


class TranscriptFragmentEvent(BaseEvent):
    kind: Literal["transcript"] = "transcript"
    role: SpeakerRole
    text: str
    is_final: bool = False


class StateChangedEvent(BaseEvent):
    kind: Literal["state"] = "state"
    state: AgentState


class WarningEvent(BaseEvent):
    kind: Literal["warning"] = "warning"
    message: str


class ErrorEvent(BaseEvent):
    kind: Literal["error"] = "error"
    message: str


class AudioPayload(BaseModel):
    """Binary agent speech, forwarded to the client verbatim."""

    data: bytes


NormalizedEvent = Union[
    WelcomeEvent,
    ConfigurationAcknowledgedEvent,
    TranscriptFragmentEvent,
    StateChangedEvent,
    WarningEvent,
    ErrorEvent,
]
