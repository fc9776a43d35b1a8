"""
Pydantic models for the ElevenLabs Conversational AI WebSocket protocol.

Inbound frames carry a ``type`` discriminator and keep their payload in a
nested ``<type>_event`` object. The models below lift the fields the bridge
needs to the top level at parse time, so handlers never chase optional nested
keys. Audio is the one message with two wire shapes (``audio_event.audio_base_64``
and ``audio.chunk``); both resolve into ``AudioEvent`` tagged by ``source``.
"""

import json
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from call_relay.config.constants import (
    AI_MESSAGE_AGENT_RESPONSE,
    AI_MESSAGE_AUDIO,
    AI_MESSAGE_INITIATION_CLIENT_DATA,
    AI_MESSAGE_INITIATION_METADATA,
    AI_MESSAGE_INTERRUPTION,
    AI_MESSAGE_PING,
    AI_MESSAGE_PONG,
    AI_MESSAGE_USER_TRANSCRIPT,
)
from call_relay.exceptions import ProtocolParseError

LEG = "ai"

EventId = Union[int, str]


def _lift(data: Any, container: str, fields: Dict[str, str]) -> Any:
    """Copy ``data[container][src]`` to ``data[dst]`` for each mapped field."""
    if not isinstance(data, dict):
        return data
    nested = data.get(container)
    if not isinstance(nested, dict):
        return data
    lifted = dict(data)
    for src, dst in fields.items():
        if dst not in lifted and src in nested:
            lifted[dst] = nested[src]
    return lifted


# Inbound messages
class ConvAIMessage(BaseModel):
    """Base model for all messages received from the AI leg."""

    type: str = Field(..., description="Message type discriminator")


class AudioEvent(ConvAIMessage):
    """Agent speech, normalized from either wire shape."""

    type: Literal["audio"]
    audio_base_64: str = Field(..., min_length=1)
    source: Literal["audio_event", "chunk"]
    event_id: Optional[EventId] = None

    @model_validator(mode="before")
    @classmethod
    def resolve_payload_shape(cls, data):
        if not isinstance(data, dict) or "audio_base_64" in data:
            return data
        audio_event = data.get("audio_event")
        if isinstance(audio_event, dict) and audio_event.get("audio_base_64"):
            return {
                **data,
                "audio_base_64": audio_event["audio_base_64"],
                "source": "audio_event",
                "event_id": audio_event.get("event_id"),
            }
        audio = data.get("audio")
        if isinstance(audio, dict) and audio.get("chunk"):
            return {**data, "audio_base_64": audio["chunk"], "source": "chunk"}
        return data


class InterruptionEvent(ConvAIMessage):
    """The agent stopped speaking because the caller interrupted."""

    type: Literal["interruption"]
    event_id: Optional[EventId] = None

    @model_validator(mode="before")
    @classmethod
    def lift_fields(cls, data):
        return _lift(data, "interruption_event", {"event_id": "event_id"})


class PingEvent(ConvAIMessage):
    """Keepalive that must be answered with a pong carrying the same id."""

    type: Literal["ping"]
    event_id: EventId
    ping_ms: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def lift_fields(cls, data):
        return _lift(
            data, "ping_event", {"event_id": "event_id", "ping_ms": "ping_ms"}
        )


class AgentResponseEvent(ConvAIMessage):
    type: Literal["agent_response"]
    agent_response: str = ""

    @model_validator(mode="before")
    @classmethod
    def lift_fields(cls, data):
        return _lift(data, "agent_response_event", {"agent_response": "agent_response"})


class UserTranscriptEvent(ConvAIMessage):
    type: Literal["user_transcript"]
    user_transcript: str = ""

    @model_validator(mode="before")
    @classmethod
    def lift_fields(cls, data):
        return _lift(
            data, "user_transcription_event", {"user_transcript": "user_transcript"}
        )


class ConversationInitiationMetadataEvent(ConvAIMessage):
    """First message on the AI leg, naming the backend conversation."""

    type: Literal["conversation_initiation_metadata"]
    conversation_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def lift_fields(cls, data):
        return _lift(
            data,
            "conversation_initiation_metadata_event",
            {"conversation_id": "conversation_id"},
        )


class UnrecognizedConvAIMessage(ConvAIMessage):
    """Any message the bridge does not act on."""


# Outbound messages
class PromptOverride(BaseModel):
    prompt: str


class AgentOverride(BaseModel):
    prompt: PromptOverride
    first_message: str


class ConversationConfigOverride(BaseModel):
    agent: AgentOverride


class ConversationInitiationClientData(BaseModel):
    """Per-call configuration sent once when the AI leg opens."""

    type: Literal["conversation_initiation_client_data"] = AI_MESSAGE_INITIATION_CLIENT_DATA
    dynamic_variables: Dict[str, Any] = Field(default_factory=dict)
    conversation_config_override: ConversationConfigOverride


class UserAudioChunkMessage(BaseModel):
    """Caller audio forwarded to the agent."""

    user_audio_chunk: str


class PongMessage(BaseModel):
    type: Literal["pong"] = AI_MESSAGE_PONG
    event_id: EventId


CONVAI_MESSAGE_MODELS = {
    AI_MESSAGE_AUDIO: AudioEvent,
    AI_MESSAGE_INTERRUPTION: InterruptionEvent,
    AI_MESSAGE_PING: PingEvent,
    AI_MESSAGE_AGENT_RESPONSE: AgentResponseEvent,
    AI_MESSAGE_USER_TRANSCRIPT: UserTranscriptEvent,
    AI_MESSAGE_INITIATION_METADATA: ConversationInitiationMetadataEvent,
}


def parse_convai_message(raw: Union[str, bytes]) -> ConvAIMessage:
    """
    Parse one frame from the AI leg.

    Args:
        raw: The JSON frame, as text or UTF-8 bytes

    Returns:
        The typed message, or ``UnrecognizedConvAIMessage`` for types the
        bridge does not handle

    Raises:
        ProtocolParseError: If the frame is not JSON or fails validation
    """
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolParseError(LEG, f"invalid JSON: {e}")
    if not isinstance(data, dict):
        raise ProtocolParseError(LEG, "frame is not a JSON object")

    message_type = data.get("type")
    model = UnrecognizedConvAIMessage
    if isinstance(message_type, str):
        model = CONVAI_MESSAGE_MODELS.get(message_type, UnrecognizedConvAIMessage)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ProtocolParseError(LEG, str(e))
