"""
Pydantic models for the browser-facing websocket protocol.

Text frames in both directions are JSON objects with a `type` discriminator.
Binary frames carry raw PCM and have no schema.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from agent_bridge.models.events import AgentState, SpeakerRole


class ClientMessage(BaseModel):
    """Base model for all text messages on the client leg."""

    type: str = Field(..., description="Message type identifier")


# Client -> Bridge
class StartMessage(ClientMessage):
    """Start of session, optionally selecting a persona."""

    type: Literal["start"]
    voiceId: Optional[str] = Field(None, description="Persona selector")

    @field_validator("voiceId", mode="before")
    def coerce_voice_id(cls, v):
        """Browsers send the persona as a number or a string; keep it as text."""
        if v is None:
            return None
        return str(v).strip() or None


class StopMessage(ClientMessage):
    """Explicit end of session."""

    type: Literal["stop"]


# Bridge -> Client
class StateMessage(ClientMessage):
    type: Literal["state"] = "state"
    state: AgentState


class TranscriptMessage(ClientMessage):
    type: Literal["transcript"] = "transcript"
    role: SpeakerRole
    text: str
    partial: bool = False


class ErrorMessage(ClientMessage):
    type: Literal["error"] = "error"
    message: str


class StatusMessage(ClientMessage):
    type: Literal["status"] = "status"
    message: str
    level: Literal["info", "warning"] = "info"


class SettingsStatusMessage(ClientMessage):
    type: Literal["settings"] = "settings"
    applied: bool
    voice: Optional[str] = None


OutgoingClientMessage = Union[
    StateMessage,
    TranscriptMessage,
    ErrorMessage,
    StatusMessage,
    SettingsStatusMessage,
]
