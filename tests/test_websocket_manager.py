import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import WebSocket

from call_relay.bridge.bridge_session import BridgeSession
from call_relay.bridge.registry import SessionRegistry
from call_relay.models.session import SessionState
from call_relay.services.signed_url import SignedUrlResolver
from call_relay.websocket_manager import WebSocketManager


@pytest.fixture
def resolver():
    return AsyncMock(spec=SignedUrlResolver)


@pytest.fixture
def websocket_manager(settings, resolver):
    return WebSocketManager(settings, resolver)


def test_websocket_manager_initialization(settings):
    """Without an explicit resolver one is built from the settings"""
    manager = WebSocketManager(settings)

    assert isinstance(manager.registry, SessionRegistry)
    assert isinstance(manager.resolver, SignedUrlResolver)
    assert manager.resolver.settings is settings
    assert len(manager.registry) == 0


def test_create_session_is_per_connection(websocket_manager):
    first = websocket_manager.create_session(AsyncMock(spec=WebSocket))
    second = websocket_manager.create_session(AsyncMock(spec=WebSocket))

    assert isinstance(first, BridgeSession)
    assert first is not second
    assert first.session_id != second.session_id
    assert first.resolver is websocket_manager.resolver


@pytest.mark.asyncio
async def test_session_registered_while_running(websocket_manager, telephony):
    """The session is registered for the call and removed afterwards"""
    seen = {}

    async def fake_run(self):
        seen["registered"] = websocket_manager.registry.active_sessions.get(self.session_id) is self

    with patch.object(BridgeSession, "run", fake_run):
        await websocket_manager.handle_websocket(telephony)

    assert telephony.accepted
    assert seen["registered"]
    assert len(websocket_manager.registry) == 0


@pytest.mark.asyncio
async def test_session_closed_when_run_fails(websocket_manager, telephony):
    """Cleanup happens even if the session raises"""
    with patch.object(BridgeSession, "run", AsyncMock(side_effect=RuntimeError("boom"))):
        with pytest.raises(RuntimeError):
            await websocket_manager.handle_websocket(telephony)

    assert telephony.closed
    assert len(websocket_manager.registry) == 0


@pytest.mark.asyncio
async def test_full_call_flow(websocket_manager, telephony, ai_leg, resolver):
    """A call runs from start to stop through the manager"""
    resolver.resolve_signed_url.return_value = "wss://example.test/convai?token=t"

    with patch("websockets.connect", new=AsyncMock(return_value=ai_leg)):
        handler = asyncio.create_task(websocket_manager.handle_websocket(telephony))
        telephony.feed(
            {"event": "start", "start": {"streamSid": "MZ1", "callSid": "CA1"}}
        )
        telephony.feed({"event": "media", "media": {"payload": "QUJD"}})

        for _ in range(1000):
            if len(ai_leg.sent) >= 1:
                break
            await asyncio.sleep(0.001)
        assert len(websocket_manager.registry) == 1
        session = next(iter(websocket_manager.registry.active_sessions.values()))

        ai_leg.feed({"type": "audio", "audio_event": {"audio_base_64": "UENN"}})
        for _ in range(1000):
            if telephony.sent:
                break
            await asyncio.sleep(0.001)

        telephony.feed({"event": "stop"})
        await asyncio.wait_for(handler, 1.0)

    assert session.state is SessionState.CLOSED
    assert telephony.sent == [
        {"event": "media", "streamSid": "MZ1", "media": {"payload": "UENN"}}
    ]
    assert ai_leg.sent[0]["type"] == "conversation_initiation_client_data"
    assert ai_leg.closed
    assert telephony.closed
    assert len(websocket_manager.registry) == 0
