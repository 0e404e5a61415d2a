"""
Type-safe models for the upstream voice agent `Settings` message.

The Settings message is the session configuration: audio formats, the speech
recognition, language model and speech synthesis providers, the system prompt
and the greeting. It is built once per connection and sent exactly once.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agent_bridge.config.settings import BridgeSettings


class AudioFormat(BaseModel):
    model_config = ConfigDict(frozen=True)

    encoding: str
    sample_rate: int
    container: Optional[str] = None


class AudioConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: AudioFormat
    output: AudioFormat


class ListenProvider(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "deepgram"
    model: str
    smart_format: bool = True


class ThinkProvider(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "open_ai"
    model: str
    temperature: float = Field(..., ge=0.0, le=2.0)


class SpeakProvider(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "deepgram"
    model: str


class ListenConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: ListenProvider


class ThinkConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: ThinkProvider
    prompt: str


class SpeakConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: SpeakProvider


class AgentConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    language: str = "en"
    greeting: Optional[str] = None
    listen: ListenConfig
    think: ThinkConfig
    speak: SpeakConfig


class SessionConfiguration(BaseModel):
    """The `Settings` message sent upstream before any audio."""

    model_config = ConfigDict(frozen=True)

    type: Literal["Settings"] = "Settings"
    audio: AudioConfig
    agent: AgentConfig

    @property
    def voice(self) -> str:
        return self.agent.speak.provider.model

    def to_wire(self) -> str:
        return self.model_dump_json(exclude_none=True)


def build_session_configuration(
    settings: BridgeSettings, voice_id: Optional[str] = None
) -> SessionConfiguration:
    """
    Build the per-connection session configuration.

    Args:
        settings: Process-wide settings
        voice_id: Optional persona selector overriding the TTS voice

    Returns:
        SessionConfiguration: Immutable Settings message for this connection
    """
    profile = settings.options.audio_profile
    return SessionConfiguration(
        audio=AudioConfig(
            input=AudioFormat(encoding=profile.encoding, sample_rate=profile.sample_rate),
            output=AudioFormat(
                encoding=profile.encoding,
                sample_rate=profile.sample_rate,
                container="none",
            ),
        ),
        agent=AgentConfig(
            greeting=settings.greeting or None,
            listen=ListenConfig(provider=ListenProvider(model=settings.stt_model)),
            think=ThinkConfig(
                provider=ThinkProvider(
                    model=settings.llm_model, temperature=settings.llm_temperature
                ),
                prompt=settings.prompt,
            ),
            speak=SpeakConfig(provider=SpeakProvider(model=settings.voice_for(voice_id))),
        ),
    )
