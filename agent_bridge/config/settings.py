"""
Process-wide configuration for the voice agent bridge.

Settings are read once from the environment at process start and are immutable
afterwards. Every connection receives the same BridgeSettings instance; nothing
in the bridge mutates it.
"""

import os
import re
from enum import Enum
from typing import Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from agent_bridge.config.constants import (
    AUDIO_ENCODING_LINEAR16,
    AUDIO_ENCODING_MULAW,
    AUDIO_FRAME_MS,
    DEFAULT_AGENT_NAME,
    DEFAULT_AGENT_URL,
    DEFAULT_CLIENT_PING_INTERVAL_S,
    DEFAULT_CLOSE_GRACE_S,
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_FIRM_NAME,
    DEFAULT_GREETING_GATE_TIMEOUT_S,
    DEFAULT_KEEPALIVE_INTERVAL_S,
    DEFAULT_LLM_MODEL,
    DEFAULT_LLM_TEMPERATURE,
    DEFAULT_PREROLL_MAX_FRAMES,
    DEFAULT_STT_MODEL,
    DEFAULT_TTS_VOICE,
    PERSONA_IDS,
    PROMPT_MAX_CHARS,
    PROMPT_MIN_CHARS,
)

FALLBACK_PROMPT = (
    "You are the intake specialist. Determine existing client vs accident. "
    "If existing: ask full name, best phone, and attorney; then say you will transfer. "
    "If accident: collect full name, phone, email, what happened, when, and city/state; "
    "confirm all; then say you will transfer. Be warm, concise, and stop speaking if "
    "the caller talks."
)

_NON_ASCII = re.compile(r"[\x00-\x1f\x7f-\uffff]")
_WHITESPACE = re.compile(r"\s+")


class AudioProfile(str, Enum):
    """Audio framing profile shared by the client leg and the upstream leg."""

    LINEAR16_16K = "linear16_16k"
    MULAW_8K = "mulaw_8k"

    @property
    def encoding(self) -> str:
        if self is AudioProfile.MULAW_8K:
            return AUDIO_ENCODING_MULAW
        return AUDIO_ENCODING_LINEAR16

    @property
    def sample_rate(self) -> int:
        return 8000 if self is AudioProfile.MULAW_8K else 16000

    @property
    def sample_width(self) -> int:
        return 1 if self is AudioProfile.MULAW_8K else 2

    def frame_bytes(self, frame_ms: int = AUDIO_FRAME_MS) -> int:
        """Bytes in one mono frame of `frame_ms` milliseconds."""
        return self.sample_rate * self.sample_width * frame_ms // 1000


class BridgeOptions(BaseModel):
    """Behavioural switches that used to be separate bridge variants."""

    model_config = ConfigDict(frozen=True)

    client_text_policy: Literal["interpret", "ignore"] = "interpret"
    preroll_policy: Literal["buffer", "drop"] = "buffer"
    audio_profile: AudioProfile = AudioProfile.LINEAR16_16K
    gate_mic_during_greeting: bool = False
    greeting_gate_timeout_s: float = Field(DEFAULT_GREETING_GATE_TIMEOUT_S, gt=0)
    preroll_max_frames: int = Field(DEFAULT_PREROLL_MAX_FRAMES, gt=0)
    frame_ms: int = Field(AUDIO_FRAME_MS, gt=0)

    @property
    def frame_bytes(self) -> int:
        return self.audio_profile.frame_bytes(self.frame_ms)


class BridgeSettings(BaseModel):
    """Immutable process configuration consumed by every bridge session."""

    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    agent_url: str = DEFAULT_AGENT_URL
    stt_model: str = DEFAULT_STT_MODEL
    tts_voice: str = DEFAULT_TTS_VOICE
    persona_voices: Dict[str, str] = Field(default_factory=dict)
    llm_model: str = DEFAULT_LLM_MODEL
    llm_temperature: float = DEFAULT_LLM_TEMPERATURE
    firm_name: str = DEFAULT_FIRM_NAME
    agent_name: str = DEFAULT_AGENT_NAME
    prompt: str = FALLBACK_PROMPT
    greeting: str = ""
    keepalive_interval_s: float = Field(DEFAULT_KEEPALIVE_INTERVAL_S, gt=0)
    connect_timeout_s: float = Field(DEFAULT_CONNECT_TIMEOUT_S, gt=0)
    close_grace_s: float = Field(DEFAULT_CLOSE_GRACE_S, gt=0)
    client_ping_interval_s: float = Field(DEFAULT_CLIENT_PING_INTERVAL_S, gt=0)
    options: BridgeOptions = Field(default_factory=BridgeOptions)

    def voice_for(self, voice_id: Optional[str]) -> str:
        """Resolve the TTS voice for a persona, falling back to the default voice."""
        if voice_id is not None and str(voice_id) in self.persona_voices:
            return self.persona_voices[str(voice_id)]
        return self.tts_voice

    def public_view(self) -> Dict[str, object]:
        """Non-secret configuration for the introspection endpoint."""
        return {
            "agent_url": self.agent_url,
            "api_key_configured": bool(self.api_key),
            "stt_model": self.stt_model,
            "tts_voice": self.tts_voice,
            "persona_voices": dict(self.persona_voices),
            "llm_model": self.llm_model,
            "llm_temperature": self.llm_temperature,
            "firm_name": self.firm_name,
            "agent_name": self.agent_name,
            "prompt_length": len(self.prompt),
            "greeting": self.greeting,
            "options": self.options.model_dump(mode="json"),
        }


def sanitize_ascii(text: Optional[str]) -> str:
    """Replace control and non-ASCII characters with spaces and collapse whitespace."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", _NON_ASCII.sub(" ", str(text))).strip()


def compact_prompt(text: str, max_chars: int = PROMPT_MAX_CHARS) -> str:
    """Cap a prompt at `max_chars`; prompts too short to be useful get the fallback."""
    if not text:
        return FALLBACK_PROMPT
    clipped = text[:max_chars]
    if len(clipped) >= PROMPT_MIN_CHARS:
        return clipped
    return FALLBACK_PROMPT


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> BridgeSettings:
    """
    Build BridgeSettings from environment variables.

    Args:
        environ: Mapping to read from; defaults to os.environ

    Returns:
        BridgeSettings: The immutable settings for this process
    """
    env = os.environ if environ is None else environ

    firm = env.get("FIRM_NAME") or DEFAULT_FIRM_NAME
    agent_name = env.get("AGENT_NAME") or DEFAULT_AGENT_NAME

    default_prompt = (
        f"You are {agent_name}, the intake specialist for {firm}. Ask if the caller is an "
        "existing client or in an accident. Ask exactly one question per turn. If existing: "
        "ask full name, best phone, and which attorney, then say you will transfer. If "
        "accident: collect full name, phone, email, what happened, when, and city/state; "
        "confirm all; then say you will transfer. Stop when the caller talks."
    )
    use_env_prompt = not _env_bool(env.get("DISABLE_ENV_INSTRUCTIONS"), False)
    raw_prompt = env.get("AGENT_INSTRUCTIONS", "") if use_env_prompt else ""
    prompt = compact_prompt(sanitize_ascii(raw_prompt or default_prompt))

    greeting = sanitize_ascii(
        env.get("AGENT_GREETING")
        or f"Thank you for calling {firm}. Were you in an accident, or are you an existing client?"
    )

    persona_voices = {
        persona: env[f"VOICE_{persona}_TTS"].strip()
        for persona in PERSONA_IDS
        if env.get(f"VOICE_{persona}_TTS", "").strip()
    }

    options = BridgeOptions(
        client_text_policy=env.get("CLIENT_TEXT_POLICY", "interpret").strip().lower(),
        preroll_policy=env.get("PREROLL_POLICY", "buffer").strip().lower(),
        audio_profile=AudioProfile(env.get("AUDIO_PROFILE", AudioProfile.LINEAR16_16K.value).strip().lower()),
        gate_mic_during_greeting=_env_bool(env.get("GATE_MIC_DURING_GREETING"), False),
        greeting_gate_timeout_s=float(env.get("GREETING_GATE_TIMEOUT_S", DEFAULT_GREETING_GATE_TIMEOUT_S)),
        preroll_max_frames=int(env.get("PREROLL_MAX_FRAMES", DEFAULT_PREROLL_MAX_FRAMES)),
    )

    return BridgeSettings(
        api_key=(env.get("DEEPGRAM_API_KEY") or env.get("DG_API_KEY") or "").strip() or None,
        agent_url=(env.get("DG_AGENT_URL") or DEFAULT_AGENT_URL).strip(),
        stt_model=(env.get("DG_STT_MODEL") or DEFAULT_STT_MODEL).strip(),
        tts_voice=(env.get("DG_TTS_VOICE") or DEFAULT_TTS_VOICE).strip(),
        persona_voices=persona_voices,
        llm_model=(env.get("LLM_MODEL") or DEFAULT_LLM_MODEL).strip(),
        llm_temperature=float(env.get("LLM_TEMPERATURE", DEFAULT_LLM_TEMPERATURE)),
        firm_name=firm,
        agent_name=agent_name,
        prompt=prompt,
        greeting=greeting,
        keepalive_interval_s=float(env.get("KEEPALIVE_INTERVAL_S", DEFAULT_KEEPALIVE_INTERVAL_S)),
        connect_timeout_s=float(env.get("UPSTREAM_CONNECT_TIMEOUT_S", DEFAULT_CONNECT_TIMEOUT_S)),
        close_grace_s=float(env.get("CLOSE_GRACE_S", DEFAULT_CLOSE_GRACE_S)),
        client_ping_interval_s=float(env.get("CLIENT_PING_INTERVAL_S", DEFAULT_CLIENT_PING_INTERVAL_S)),
        options=options,
    )
