"""
Call Relay - telephony media streams to ElevenLabs Conversational AI

Bridges a phone call, delivered as a bidirectional media stream WebSocket by the
telephony provider, to a conversation with an ElevenLabs AI voice agent. Each
call gets its own bridge session that opens the AI leg with a short-lived signed
URL, forwards per-call variables (name, greeting, prompt) and then relays audio,
interruptions and keepalives between the two legs until the call ends.

Key Components:
- bridge: the per-call ``BridgeSession`` and the ``SessionRegistry``
- config: constants, logging setup and environment-driven settings
- models: Pydantic models for both wire protocols and the session state
- services: the signed URL resolver for the ElevenLabs control API
- websocket_manager: accepts media streams and runs one session per call

Getting Started:
1. Set up environment variables:
   - ELEVENLABS_API_KEY: Your ElevenLabs API key
   - ELEVENLABS_AGENT_ID: Agent used when a call does not name one
   - PORT / HOST: Where to listen (default 0.0.0.0:8000)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the telephony provider's media stream at ``wss://your-server/media-stream``.
"""
