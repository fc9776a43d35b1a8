"""
FastAPI server relaying phone calls to ElevenLabs Conversational AI agents.

This module initializes the FastAPI application that accepts telephony media
stream WebSockets and bridges each call to an AI agent session. It also exposes
the liveness and health endpoints.
"""

import os
from pathlib import Path

import dotenv
from fastapi import FastAPI, WebSocket

from call_relay.config.logging_config import configure_logging
from call_relay.config.settings import load_settings
from call_relay.websocket_manager import WebSocketManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

logger = configure_logging()

PORT = int(os.getenv("PORT", "8000"))
HOST = os.getenv("HOST", "0.0.0.0")

settings = load_settings()

app = FastAPI(
    title="Call Relay",
    description="Bridges telephony media streams to ElevenLabs Conversational AI agents",
    version="1.0.0",
)

websocket_manager = WebSocketManager(settings)


@app.websocket("/media-stream")
async def media_stream(websocket: WebSocket):
    """WebSocket endpoint for the telephony provider's bidirectional media stream.

    One connection carries one call: ``start``, a run of ``media`` frames and
    finally ``stop``. Agent audio and ``clear`` frames are sent back on the
    same socket.
    """
    await websocket_manager.handle_websocket(websocket)


@app.get("/")
async def root():
    """Liveness endpoint returning a static acknowledgement."""
    return {"message": "Call relay server is running"}


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status, whether credentials are configured and the number of
        calls currently bridged.
    """
    return {
        "status": "healthy",
        "elevenlabs_api_key_configured": bool(settings.elevenlabs_api_key),
        "default_agent_configured": bool(settings.elevenlabs_agent_id),
        "active_sessions": len(websocket_manager.registry),
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{HOST}:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT, http="h11")
