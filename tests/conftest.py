import asyncio
import json
import logging

import pytest
from starlette.websockets import WebSocketDisconnect

from call_relay.config.settings import RelaySettings

_AI_CLOSED = object()


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeTelephonySocket:
    """Stands in for the accepted FastAPI websocket of the telephony leg."""

    def __init__(self):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.accepted = False
        self.closed = False
        self.close_calls = 0
        self.send_error = None

    def feed(self, message):
        """Queue a frame; dicts are sent as JSON, bytes as a binary frame."""
        if isinstance(message, dict):
            message = json.dumps(message)
        self.incoming.put_nowait(message)

    def disconnect(self, code=1000):
        """Simulate the provider hanging up the socket."""
        self.incoming.put_nowait(WebSocketDisconnect(code))

    async def accept(self):
        self.accepted = True

    async def receive(self):
        item = await self.incoming.get()
        if isinstance(item, WebSocketDisconnect):
            return {"type": "websocket.disconnect", "code": item.code}
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, bytes):
            return {"type": "websocket.receive", "bytes": item}
        return {"type": "websocket.receive", "text": item}

    async def send_text(self, text):
        if self.send_error is not None:
            raise self.send_error
        if self.closed:
            raise RuntimeError('Cannot call "send" once a close message has been sent.')
        self.sent.append(json.loads(text))

    async def close(self, code=1000):
        self.close_calls += 1
        if self.closed:
            raise RuntimeError('Cannot call "send" once a close message has been sent.')
        self.closed = True
        self.incoming.put_nowait(WebSocketDisconnect(code))


class FakeAILeg:
    """Stands in for the websockets client connection of the AI leg."""

    def __init__(self):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.closed = False
        self.close_calls = 0
        self.send_error = None

    def feed(self, message):
        if isinstance(message, dict):
            message = json.dumps(message)
        self.incoming.put_nowait(message)

    def fail(self, error):
        """Make the receive loop raise ``error``."""
        self.incoming.put_nowait(error)

    def hang_up(self):
        """Simulate the backend closing the conversation cleanly."""
        self.closed = True
        self.incoming.put_nowait(_AI_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is _AI_CLOSED:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, text):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(json.loads(text))

    async def close(self):
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self.incoming.put_nowait(_AI_CLOSED)


async def wait_until(predicate, timeout=1.0):
    """Yield to the event loop until ``predicate()`` holds."""

    async def _poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def settings():
    return RelaySettings(
        elevenlabs_api_key="test-api-key",
        elevenlabs_agent_id="agent_default",
        default_name="there",
        default_first_message="Hi, how can I help?",
        default_prompt="You are a test assistant.",
    )


@pytest.fixture
def telephony():
    return FakeTelephonySocket()


@pytest.fixture
def ai_leg():
    return FakeAILeg()
