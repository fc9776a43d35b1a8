import time

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, patch, MagicMock

from call_relay.main import app, websocket_manager
from call_relay.services.signed_url import SignedUrlResolver

client = TestClient(app)


def test_root_endpoint():
    """Test the liveness endpoint returns a static acknowledgement"""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Call relay server is running"}


def test_health_check():
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert isinstance(response_json["elevenlabs_api_key_configured"], bool)
    assert isinstance(response_json["default_agent_configured"], bool)
    assert response_json["active_sessions"] == len(websocket_manager.registry)


def test_health_counts_active_sessions():
    session = MagicMock()
    session.session_id = "live-session"
    websocket_manager.registry.add_session(session)
    try:
        assert client.get("/health").json()["active_sessions"] == 1
    finally:
        websocket_manager.registry.remove_session("live-session")


@pytest.mark.asyncio
async def test_media_stream_endpoint():
    """Test that the media stream endpoint hands the socket to the manager"""
    with patch.object(websocket_manager, "handle_websocket") as mock_handle:
        mock_handle.return_value = None
        mock_websocket = MagicMock()

        websocket_route = next(route for route in app.routes if route.path == "/media-stream")
        await websocket_route.endpoint(mock_websocket)

        mock_handle.assert_called_once_with(mock_websocket)


def test_media_stream_setup_failure_closes_socket():
    """Without a usable agent the bridge hangs up the telephony leg"""
    settings = websocket_manager.settings.model_copy(update={"elevenlabs_agent_id": None})
    with patch.object(websocket_manager, "settings", settings):
        with client.websocket_connect("/media-stream") as websocket:
            websocket.send_json({"event": "start", "start": {"streamSid": "MZ1"}})
            message = websocket.receive()
            assert message["type"] == "websocket.close"


def test_app_configuration():
    """Test the app configuration on startup"""
    assert app.title == "Call Relay"
    assert app.version == "1.0.0"

    route_paths = [route.path for route in app.routes]
    assert "/media-stream" in route_paths
    assert "/health" in route_paths
    assert "/" in route_paths


def wait_for(predicate, timeout=2.0):
    """Poll from the test thread while the app runs in the client's portal."""
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "timed out waiting for the bridge"
        time.sleep(0.01)


def test_media_stream_binary_frame_does_not_end_call(ai_leg):
    """A binary frame mid-call is dropped and the call keeps relaying audio"""
    resolver = AsyncMock(spec=SignedUrlResolver)
    resolver.resolve_signed_url.return_value = "wss://example.test/convai?token=t"
    settings = websocket_manager.settings.model_copy(update={"elevenlabs_agent_id": "agent_1"})

    with patch.object(websocket_manager, "settings", settings), patch.object(
        websocket_manager, "resolver", resolver
    ), patch("websockets.connect", new=AsyncMock(return_value=ai_leg)):
        with client.websocket_connect("/media-stream") as websocket:
            websocket.send_json({"event": "start", "start": {"streamSid": "SID1"}})
            wait_for(lambda: len(ai_leg.sent) == 1)

            websocket.send_bytes(b"\x00\x01garbage")
            websocket.send_json({"event": "media", "media": {"payload": "QUJD"}})
            wait_for(lambda: len(ai_leg.sent) == 2)
            assert ai_leg.sent[1] == {"user_audio_chunk": "QUJD"}

            websocket.send_json({"event": "stop"})
            message = websocket.receive()
            assert message["type"] == "websocket.close"

    assert ai_leg.closed
