from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from agent_bridge import main
from agent_bridge.main import app, websocket_manager

client = TestClient(app)


def test_health_check():
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert isinstance(response_json["api_key_configured"], bool)
    assert response_json["active_connections"] == 0


def test_config_does_not_leak_api_key(make_settings):
    """The configuration view reports whether a key is set, never the key"""
    with patch.object(main, "settings", make_settings(api_key="super-secret-key")):
        response = client.get("/config")

    assert response.status_code == 200
    assert "super-secret-key" not in response.text
    payload = response.json()
    assert payload["api_key_configured"] is True
    assert payload["options"]["preroll_policy"] == "buffer"


def test_root_endpoint():
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "Voice Agent Bridge"
    assert response_json["version"] == "1.0.0"
    assert "/web-demo/ws" in response_json["endpoints"]
    assert "/health" in response_json["endpoints"]


def test_websocket_manager_initialization():
    assert websocket_manager is not None
    assert websocket_manager.settings is main.settings
    assert len(websocket_manager.connection_manager) == 0


@pytest.mark.asyncio
async def test_websocket_endpoint_delegates_to_manager():
    """Test that websocket endpoint calls the handle_websocket method"""
    with patch.object(websocket_manager, "handle_websocket", AsyncMock()) as mock_handle:
        mock_websocket = MagicMock()

        websocket_route = next(route for route in app.routes if route.path == "/web-demo/ws")
        await websocket_route.endpoint(mock_websocket)

        mock_handle.assert_awaited_once_with(mock_websocket)


def test_websocket_without_credential_reports_error(make_settings):
    """A missing credential is reported to the browser before the socket closes"""
    with patch.object(websocket_manager, "settings", make_settings(api_key=None)):
        with client.websocket_connect("/web-demo/ws?voiceId=2") as ws:
            message = ws.receive_json()
            assert message["type"] == "error"
            assert "DEEPGRAM_API_KEY" in message["message"]

            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()

    assert exc_info.value.code == 1008


def test_app_configuration():
    assert app.title == "Voice Agent Bridge"
    assert app.version == "1.0.0"

    route_paths = [route.path for route in app.routes]
    assert "/web-demo/ws" in route_paths
    assert "/health" in route_paths
    assert "/config" in route_paths
    assert "/" in route_paths
