"""
Constants and configuration values used throughout the application.

This module defines the wire-level names of both call legs (telephony media
stream events and ElevenLabs Conversational AI message types) so the rest of
the code never spells a protocol string twice.
"""

# Logger name used throughout the application
LOGGER_NAME = "call_relay"

# ElevenLabs control API
DEFAULT_ELEVENLABS_API_BASE = "https://api.elevenlabs.io/v1"
SIGNED_URL_PATH = "/convai/conversation/get_signed_url"
DEFAULT_SIGNED_URL_TIMEOUT = 10.0  # seconds

# AI leg WebSocket configuration
AI_WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
AI_WS_CLOSE_TIMEOUT = 5  # seconds

# Per-call defaults for the initiation message
DEFAULT_NAME = "there"
DEFAULT_FIRST_MESSAGE = "Hello! How can I help you today?"
DEFAULT_PROMPT = "You are a friendly and helpful phone assistant."

# Telephony leg event types
TELEPHONY_EVENT_CONNECTED = "connected"
TELEPHONY_EVENT_START = "start"
TELEPHONY_EVENT_MEDIA = "media"
TELEPHONY_EVENT_STOP = "stop"
TELEPHONY_EVENT_MARK = "mark"
TELEPHONY_EVENT_DTMF = "dtmf"
TELEPHONY_EVENT_CLEAR = "clear"

# AI leg message types
AI_MESSAGE_AUDIO = "audio"
AI_MESSAGE_INTERRUPTION = "interruption"
AI_MESSAGE_PING = "ping"
AI_MESSAGE_PONG = "pong"
AI_MESSAGE_AGENT_RESPONSE = "agent_response"
AI_MESSAGE_USER_TRANSCRIPT = "user_transcript"
AI_MESSAGE_INITIATION_METADATA = "conversation_initiation_metadata"
AI_MESSAGE_INITIATION_CLIENT_DATA = "conversation_initiation_client_data"
AI_MESSAGE_VAD_SCORE = "vad_score"

# Custom parameter keys read from the telephony start event
PARAM_NAME = "name"
PARAM_CALLER_ID = "caller_id"
PARAM_PROMPT = "prompt"
PARAM_FIRST_MESSAGE = "first_message"
PARAM_AGENT_ID = "agent_id"
