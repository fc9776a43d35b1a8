"""
Registry of live bridge sessions.

Sessions never look each other up; the registry exists so the health endpoint
can report how many calls are being bridged right now.
"""

from typing import Dict

from call_relay.bridge.bridge_session import BridgeSession


class SessionRegistry:
    """
    Tracks the bridge sessions currently alive in this process.

    Sessions are keyed by their server-generated ``session_id`` because the
    telephony call id is only known after the stream's start event.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self.active_sessions: Dict[str, BridgeSession] = {}

    def add_session(self, session: BridgeSession) -> None:
        self.active_sessions[session.session_id] = session

    def remove_session(self, session_id: str) -> None:
        """Remove a session; unknown ids are ignored."""
        self.active_sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self.active_sessions)
