import asyncio
import json
import logging
import os
import tempfile

import pytest
from websockets.exceptions import ConnectionClosedOK

# Keep log files out of the working tree; read when logging_config is imported
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="agent_bridge_logs_"))

from agent_bridge.config.constants import LOGGER_NAME  # noqa: E402
from agent_bridge.config.settings import BridgeOptions, BridgeSettings  # noqa: E402


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)

    # Let caplog see the application logger even after configure_logging ran
    app_logger = logging.getLogger(LOGGER_NAME)
    for handler in app_logger.handlers[:]:
        app_logger.removeHandler(handler)
    app_logger.setLevel(logging.DEBUG)
    app_logger.propagate = True
    yield


class FakeClientWebSocket:
    """In-memory stand-in for a FastAPI WebSocket on the browser leg."""

    def __init__(self, query_params=None):
        self.query_params = query_params or {}
        self.client = None
        self.accepted = False
        self.closed = False
        self.close_code = None
        self.close_reason = None
        self.sent_text = []
        self.sent_bytes = []
        self._incoming = asyncio.Queue()

    async def accept(self):
        self.accepted = True

    async def receive(self):
        return await self._incoming.get()

    async def send_text(self, data):
        if self.closed:
            raise RuntimeError('Cannot call "send" once a close message has been sent.')
        self.sent_text.append(json.loads(data))

    async def send_bytes(self, data):
        if self.closed:
            raise RuntimeError('Cannot call "send" once a close message has been sent.')
        self.sent_bytes.append(data)

    async def close(self, code=1000, reason=None):
        if self.closed:
            raise RuntimeError("Unexpected ASGI message 'websocket.close'")
        self.closed = True
        self.close_code = code
        self.close_reason = reason
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": code})

    def push_bytes(self, data):
        self._incoming.put_nowait({"type": "websocket.receive", "bytes": data})

    def push_text(self, text):
        self._incoming.put_nowait({"type": "websocket.receive", "text": text})

    def push_json(self, payload):
        self.push_text(json.dumps(payload))

    def disconnect(self, code=1001):
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": code})

    def messages(self, message_type):
        return [m for m in self.sent_text if m.get("type") == message_type]


class FakeUpstream:
    """In-memory stand-in for the voice agent websocket."""

    def __init__(self):
        self.sent = []
        self.closed = False
        self._incoming = asyncio.Queue()

    async def recv(self):
        item = await self._incoming.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, data):
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent.append(data)

    async def close(self):
        if not self.closed:
            self.closed = True
            self._incoming.put_nowait(ConnectionClosedOK(None, None))

    def feed(self, message):
        """Queue a frame from the agent; dicts are sent as JSON text."""
        if isinstance(message, dict):
            message = json.dumps(message)
        self._incoming.put_nowait(message)

    def fail(self, error):
        self._incoming.put_nowait(error)

    @property
    def audio_frames(self):
        return [m for m in self.sent if isinstance(m, (bytes, bytearray))]

    @property
    def control_messages(self):
        return [json.loads(m) for m in self.sent if isinstance(m, str)]

    def settings_messages(self):
        return [m for m in self.control_messages if m.get("type") == "Settings"]


class FakeConnector:
    """Callable with the websockets.connect signature returning a FakeUpstream."""

    def __init__(self, upstream=None, error=None, delay=0.0):
        self.upstream = upstream
        self.error = error
        self.delay = delay
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self._connect()

    async def _connect(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.upstream


@pytest.fixture
def client_ws():
    return FakeClientWebSocket()


@pytest.fixture
def make_client_ws():
    """Build a FakeClientWebSocket with the given query parameters."""

    def _make(query_params=None):
        return FakeClientWebSocket(query_params)

    return _make


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def connector(upstream):
    return FakeConnector(upstream)


@pytest.fixture
def make_connector(upstream):
    """Build a FakeConnector with a custom delay or error."""

    def _make(error=None, delay=0.0):
        return FakeConnector(upstream, error=error, delay=delay)

    return _make


@pytest.fixture
def make_settings():
    """Build BridgeSettings with short timers suitable for tests."""

    def _make(api_key="test-key", greeting="Hello, how can I help?", **options):
        return BridgeSettings(
            api_key=api_key,
            greeting=greeting,
            keepalive_interval_s=60,
            connect_timeout_s=1.0,
            close_grace_s=0.5,
            options=BridgeOptions(**options),
        )

    return _make


@pytest.fixture
def bridge_settings(make_settings):
    return make_settings()


@pytest.fixture
def wait_until():
    """Poll a predicate until it is true or fail after `timeout` seconds."""

    async def _wait(predicate, timeout=1.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait
