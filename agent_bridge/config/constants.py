"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for wire tags, defaults and audio formats, and making
it easier to maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "agent_bridge"

# Default upstream voice agent endpoint
DEFAULT_AGENT_URL = "wss://agent.deepgram.com/v1/agent/converse"

# Default model and voice identifiers
DEFAULT_STT_MODEL = "nova-2"
DEFAULT_TTS_VOICE = "aura-2-odysseus-en"
DEFAULT_LLM_MODEL = "gpt-4o-mini"
DEFAULT_LLM_TEMPERATURE = 0.15
DEFAULT_FIRM_NAME = "Benji Personal Injury"
DEFAULT_AGENT_NAME = "Alexis"

# Persona identifiers accepted from the client
PERSONA_IDS = ("1", "2", "3")
DEFAULT_PERSONA_ID = "1"

# Prompt limits
PROMPT_MAX_CHARS = 380
PROMPT_MIN_CHARS = 40

# Audio encodings understood by the upstream agent
AUDIO_ENCODING_LINEAR16 = "linear16"
AUDIO_ENCODING_MULAW = "mulaw"
AUDIO_FRAME_MS = 20

# Flow control
DEFAULT_PREROLL_MAX_FRAMES = 200  # ~4s of 20ms frames
DEFAULT_KEEPALIVE_INTERVAL_S = 25.0
DEFAULT_CONNECT_TIMEOUT_S = 8.0
DEFAULT_CLOSE_GRACE_S = 2.0
DEFAULT_CLIENT_PING_INTERVAL_S = 20.0
DEFAULT_GREETING_GATE_TIMEOUT_S = 10.0
INTAKE_RECENT_WINDOW = 25
HANDSHAKE_BODY_EXCERPT = 500

# Client close codes
CLOSE_NORMAL = 1000
CLOSE_POLICY_VIOLATION = 1008
CLOSE_INTERNAL_ERROR = 1011

# Upstream control message types
AGENT_MESSAGE_KEEPALIVE = "KeepAlive"

# Upstream event tags
AGENT_EVENT_WELCOME = "Welcome"
AGENT_EVENT_SETTINGS_APPLIED = "SettingsApplied"
AGENT_EVENT_USER_STARTED_SPEAKING = "UserStartedSpeaking"
AGENT_EVENT_AGENT_STARTED_SPEAKING = "AgentStartedSpeaking"
AGENT_EVENT_AGENT_STOPPED_SPEAKING = "AgentStoppedSpeaking"
AGENT_EVENT_WARNING = "AgentWarning"
AGENT_EVENT_AGENT_ERROR = "AgentError"
AGENT_EVENT_ERROR = "Error"

# Client message types
CLIENT_MESSAGE_START = "start"
CLIENT_MESSAGE_STOP = "stop"
