"""
Bot module bridging browser audio clients with the hosted voice agent.

Key components:
- AgentSessionController: Client for one upstream voice agent session over
  WebSockets, covering the handshake, the one-time Settings message,
  readiness, keepalives and close.
- BridgeSession: Per-connection orchestrator that frames and buffers client
  audio, relays agent speech, maps agent events to client messages and tears
  both legs down together.

Usage examples:
```python
from agent_bridge.bot import BridgeSession
from agent_bridge.config.settings import load_settings

settings = load_settings()

@app.websocket("/web-demo/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    await BridgeSession(websocket, settings, voice_id="1").run()
```
"""

from agent_bridge.bot.agent_client import AgentSessionController
from agent_bridge.bot.browser_bridge import BridgeSession

__all__ = ["AgentSessionController", "BridgeSession"]
