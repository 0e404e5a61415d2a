import json

import pytest
from pydantic import ValidationError

from agent_bridge.models.agent_settings import build_session_configuration
from agent_bridge.models.client_messages import (
    StartMessage,
    StateMessage,
    TranscriptMessage,
)
from agent_bridge.models.connection import Connection, ConnectionManager, SessionPhase
from agent_bridge.models.events import AgentState, SpeakerRole


def test_session_configuration_for_linear16(bridge_settings):
    payload = json.loads(build_session_configuration(bridge_settings).to_wire())

    assert payload["type"] == "Settings"
    assert payload["audio"]["input"] == {"encoding": "linear16", "sample_rate": 16000}
    assert payload["audio"]["output"] == {
        "encoding": "linear16",
        "sample_rate": 16000,
        "container": "none",
    }
    assert payload["agent"]["listen"]["provider"]["model"] == "nova-2"
    assert payload["agent"]["think"]["provider"]["temperature"] == 0.15
    assert payload["agent"]["speak"]["provider"]["model"] == "aura-2-odysseus-en"


def test_session_configuration_for_mulaw(make_settings):
    settings = make_settings(audio_profile="mulaw_8k")
    configuration = build_session_configuration(settings)

    assert configuration.audio.input.encoding == "mulaw"
    assert configuration.audio.output.sample_rate == 8000


def test_empty_greeting_is_omitted(make_settings):
    payload = json.loads(build_session_configuration(make_settings(greeting="")).to_wire())
    assert "greeting" not in payload["agent"]


def test_persona_voice_selection(bridge_settings):
    settings = bridge_settings.model_copy(update={"persona_voices": {"3": "aura-2-orion-en"}})

    assert build_session_configuration(settings, "3").voice == "aura-2-orion-en"
    assert build_session_configuration(settings, "2").voice == settings.tts_voice


@pytest.mark.parametrize("raw,expected", [(2, "2"), ("3", "3"), (" ", None), (None, None)])
def test_start_message_voice_coercion(raw, expected):
    assert StartMessage(type="start", voiceId=raw).voiceId == expected


def test_start_message_requires_start_type():
    with pytest.raises(ValidationError):
        StartMessage(type="stop")


def test_outgoing_messages_serialize_to_browser_vocabulary():
    assert json.loads(StateMessage(state=AgentState.SPEAKING).model_dump_json()) == {
        "type": "state",
        "state": "Speaking",
    }
    assert json.loads(
        TranscriptMessage(role=SpeakerRole.USER, text="hi", partial=True).model_dump_json()
    ) == {"type": "transcript", "role": "User", "text": "hi", "partial": True}


def test_session_phase_terminal():
    assert SessionPhase.CLOSED.terminal
    assert SessionPhase.FAILED.terminal
    assert not SessionPhase.READY.terminal


def test_connection_manager_registry():
    manager = ConnectionManager()
    connection = Connection(voice_id="2")

    manager.add_connection(connection)
    assert len(manager) == 1
    assert manager.get_connection(connection.connection_id) is connection

    manager.remove_connection(connection.connection_id)
    manager.remove_connection(connection.connection_id)
    assert len(manager) == 0


def test_connection_stats():
    connection = Connection(voice_id="1", connection_id="abc")
    connection.frames_sent = 3

    stats = connection.stats()

    assert stats["connection_id"] == "abc"
    assert stats["phase"] == "connecting"
    assert stats["frames_sent"] == 3
