"""
Models module for data structures and state management in the voice agent bridge.

This module provides structured data models for both legs of the bridge and for the
state each connection carries.

Key components:
- client_messages: Pydantic models for the browser websocket protocol (start/stop in,
  state/transcript/error/status/settings out).
- agent_settings: Type-safe models for the upstream `Settings` message and the builder
  that turns process settings into one connection's session configuration.
- events: The normalized event taxonomy every upstream message is folded onto.
- intake: The shadow intake record filled from user utterances.
- connection: Per-connection identity, lifecycle phase and counters, plus the registry
  of active connections.

Usage examples:
```python
from agent_bridge.config.settings import load_settings
from agent_bridge.models.agent_settings import build_session_configuration
from agent_bridge.models.client_messages import TranscriptMessage

settings = load_settings()
configuration = build_session_configuration(settings, voice_id="2")
await upstream.send(configuration.to_wire())

message = TranscriptMessage(role="User", text="My name is Jordan Smith", partial=False)
await websocket.send_text(message.model_dump_json())
```
"""

from agent_bridge.models.agent_settings import SessionConfiguration, build_session_configuration
from agent_bridge.models.client_messages import (
    ClientMessage,
    ErrorMessage,
    OutgoingClientMessage,
    SettingsStatusMessage,
    StartMessage,
    StateMessage,
    StatusMessage,
    StopMessage,
    TranscriptMessage,
)
from agent_bridge.models.connection import Connection, ConnectionManager, SessionPhase
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
from agent_bridge.models.intake import ShadowIntakeRecord
