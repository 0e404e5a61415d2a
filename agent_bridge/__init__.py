"""
Voice Agent Bridge - browser audio to hosted voice agent

This application relays a browser's live microphone audio to a hosted
conversational voice agent and relays the agent's synthesized speech back,
translating the agent's control events into a small JSON vocabulary for the
browser along the way.

Architecture Overview:
- FastAPI server exposing a websocket endpoint for browser clients
- One upstream voice agent session per browser connection
- Fixed-duration framing and a bounded preroll buffer for client audio
- Best-effort shadow intake extraction from the caller's transcript

Key Components:
- audio: Frame reassembly and preroll buffering
- bot: The upstream session controller and the per-connection bridge session
- config: Constants, environment-driven settings and logging setup
- handlers: Upstream event classification, client text handling and intake extraction
- models: Wire schemas, normalized events, intake record and connection state
- websocket_manager: Accepts browser websockets and runs their bridge sessions

Getting Started:
1. Set up environment variables:
   - DEEPGRAM_API_KEY: Your voice agent API key
   - PORT: Port to run the server on (default 8000)
   - HOST: Host to bind the server to (default 0.0.0.0)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the browser client at ws://your-server:8000/web-demo/ws?voiceId=1
"""
