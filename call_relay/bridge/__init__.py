"""
Bridge module relaying phone calls to ElevenLabs Conversational AI agents.

Key components:
- BridgeSession: owns one call's telephony and AI WebSocket legs, runs the
  session state machine and translates messages in both directions.
- SessionRegistry: bookkeeping of live sessions for observability.

Usage examples:
```python
from call_relay.bridge import BridgeSession, SessionRegistry

registry = SessionRegistry()

async def handle_call(websocket, resolver, settings):
    await websocket.accept()
    session = BridgeSession(websocket, resolver, settings)
    registry.add_session(session)
    try:
        await session.run()
    finally:
        registry.remove_session(session.session_id)
```
"""

from call_relay.bridge.bridge_session import BridgeSession
from call_relay.bridge.registry import SessionRegistry

__all__ = ["BridgeSession", "SessionRegistry"]
