from unittest.mock import AsyncMock, MagicMock

import pytest

from agent_bridge.handlers.client_handlers import (
    handle_client_text,
    handle_start,
    parse_client_text,
)
from agent_bridge.models.client_messages import (
    ClientMessage,
    StartMessage,
    StatusMessage,
    StopMessage,
)


@pytest.fixture
def session(bridge_settings):
    session = MagicMock()
    session.settings = bridge_settings
    session.connection.connection_id = "test-connection"
    session.send_client_message = AsyncMock(return_value=True)
    session.teardown = AsyncMock()
    session.apply_voice = MagicMock(return_value=True)
    return session


def test_parse_start_with_numeric_voice():
    message = parse_client_text('{"type": "start", "voiceId": 3}')
    assert isinstance(message, StartMessage)
    assert message.voiceId == "3"


def test_parse_start_without_voice():
    message = parse_client_text('{"type": "start"}')
    assert isinstance(message, StartMessage)
    assert message.voiceId is None


def test_parse_stop():
    assert isinstance(parse_client_text('{"type": "stop"}'), StopMessage)


def test_parse_other_types_as_generic_message():
    message = parse_client_text('{"type": "ping", "extra": 1}')
    assert type(message) is ClientMessage
    assert message.type == "ping"

    untyped = parse_client_text('{"hello": "world"}')
    assert untyped.type == "unknown"


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '"start"', ""])
def test_parse_malformed_returns_none(text):
    assert parse_client_text(text) is None


@pytest.mark.asyncio
async def test_start_acknowledges_applied_voice(session):
    await handle_start(StartMessage(type="start", voiceId="2"), session)

    session.apply_voice.assert_called_once_with("2")
    session.send_client_message.assert_awaited_once_with(
        StatusMessage(message="start received (voice 2)")
    )


@pytest.mark.asyncio
async def test_start_without_applied_voice(session):
    session.apply_voice.return_value = False

    await handle_start(StartMessage(type="start", voiceId="9"), session)

    session.send_client_message.assert_awaited_once_with(StatusMessage(message="start received"))


@pytest.mark.asyncio
async def test_start_without_voice_does_not_touch_persona(session):
    await handle_start(StartMessage(type="start"), session)

    session.apply_voice.assert_not_called()


@pytest.mark.asyncio
async def test_stop_tears_down_normally(session):
    await handle_client_text('{"type": "stop"}', session)

    session.teardown.assert_awaited_once_with(1000, "client stop")
    session.send_client_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_type_is_acknowledged(session):
    await handle_client_text('{"type": "mute"}', session)

    session.send_client_message.assert_awaited_once_with(StatusMessage(message="mute received"))


@pytest.mark.asyncio
async def test_malformed_text_is_silently_discarded(session):
    await handle_client_text("{broken", session)

    session.send_client_message.assert_not_awaited()
    session.teardown.assert_not_awaited()


@pytest.mark.asyncio
async def test_ignore_policy_discards_everything(session, make_settings):
    session.settings = make_settings(client_text_policy="ignore")

    await handle_client_text('{"type": "stop"}', session)
    await handle_client_text('{"type": "start", "voiceId": 2}', session)

    session.teardown.assert_not_awaited()
    session.apply_voice.assert_not_called()
    session.send_client_message.assert_not_awaited()
