"""
WebSocket connection manager for inbound telephony media streams.

Each accepted connection gets its own ``BridgeSession``. The manager registers
the session for the lifetime of the call and guarantees it is closed and
unregistered however the call ends.
"""

import logging

from fastapi import WebSocket

from call_relay.bridge.bridge_session import BridgeSession
from call_relay.bridge.registry import SessionRegistry
from call_relay.config.constants import LOGGER_NAME
from call_relay.config.settings import RelaySettings
from call_relay.services.signed_url import SignedUrlResolver

logger = logging.getLogger(LOGGER_NAME)


class WebSocketManager:
    """Accepts telephony media streams and runs one bridge session per call."""

    def __init__(self, settings: RelaySettings, resolver: SignedUrlResolver = None):
        self.settings = settings
        self.resolver = resolver or SignedUrlResolver(settings)
        self.registry = SessionRegistry()

    def create_session(self, websocket: WebSocket) -> BridgeSession:
        return BridgeSession(websocket, self.resolver, self.settings)

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle a telephony WebSocket connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        This method:
        1. Accepts the WebSocket connection
        2. Creates and registers a bridge session for the call
        3. Runs the session until either leg ends the call
        4. Closes and unregisters the session
        """
        await websocket.accept()
        session = self.create_session(websocket)
        self.registry.add_session(session)
        logger.info(
            f"Telephony connection accepted, session {session.session_id} "
            f"({len(self.registry)} active)"
        )

        try:
            await session.run()
        finally:
            await session.close()
            self.registry.remove_session(session.session_id)
            logger.info(
                f"Session {session.session_id} removed ({len(self.registry)} active)"
            )
