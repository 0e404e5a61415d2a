"""
FastAPI server for the browser voice agent bridge.

This module initializes and configures the FastAPI application that accepts
browser websockets on /web-demo/ws and bridges each one to the hosted voice
agent. It also exposes a health check and a non-secret view of the loaded
configuration.
"""

import os
from pathlib import Path

import dotenv
from fastapi import FastAPI, WebSocket

from agent_bridge.config.logging_config import configure_logging
from agent_bridge.config.settings import load_settings
from agent_bridge.websocket_manager import WebSocketManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

# Configure logging
logger = configure_logging()

# Settings are read once and shared read-only by every connection
settings = load_settings()

PORT = int(os.getenv("PORT", "8000"))
HOST = os.getenv("HOST", "0.0.0.0")

app = FastAPI(
    title="Voice Agent Bridge",
    description="Bridge between browser audio clients and a hosted voice agent",
    version="1.0.0",
)

websocket_manager = WebSocketManager(settings)


@app.websocket("/web-demo/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for browser audio clients.

    Binary frames carry raw PCM in both directions; text frames carry small
    JSON control messages. An optional `voiceId` query parameter (1-3)
    selects the agent persona.
    """
    await websocket_manager.handle_websocket(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status, whether the voice agent credential is configured, and
        the number of active bridge connections.
    """
    return {
        "status": "healthy",
        "api_key_configured": bool(settings.api_key),
        "active_connections": len(websocket_manager.connection_manager),
    }


@app.get("/config")
async def config_view():
    """Non-secret view of the loaded configuration."""
    return settings.public_view()


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API.

    Returns:
        dict: Basic information about the API and its purpose.
    """
    return {
        "name": "Voice Agent Bridge",
        "description": "Bridge between browser audio clients and a hosted voice agent",
        "version": "1.0.0",
        "endpoints": {
            "/web-demo/ws": "WebSocket endpoint for browser audio clients",
            "/health": "Health check endpoint",
            "/config": "Non-secret configuration",
        },
    }
