"""
Pydantic models for the telephony media stream protocol.

The telephony leg sends JSON text frames discriminated by an ``event`` field
(``connected``, ``start``, ``media``, ``stop``, ``mark``, ...). Only ``start``,
``media`` and ``stop`` drive the bridge; every other event parses into
``UnrecognizedTelephonyEvent`` so callers can log and ignore it.
"""

import base64
import binascii
import json
from typing import Any, Dict, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from call_relay.config.constants import (
    TELEPHONY_EVENT_CLEAR,
    TELEPHONY_EVENT_MEDIA,
    TELEPHONY_EVENT_START,
    TELEPHONY_EVENT_STOP,
)
from call_relay.exceptions import ProtocolParseError

LEG = "telephony"


def validate_base64_payload(v: str) -> str:
    """Reject empty or non-base64 audio payloads."""
    if not v:
        raise ValueError("Audio payload cannot be empty")
    try:
        base64.b64decode(v, validate=True)
    except binascii.Error:
        raise ValueError("Invalid base64 encoded audio data")
    return v


# Inbound events
class TelephonyEvent(BaseModel):
    """Base model for all events received from the telephony leg."""

    event: str = Field(..., description="Event type discriminator")
    sequenceNumber: Optional[str] = Field(None, description="Per-stream sequence number")


class StartMetadata(BaseModel):
    """The ``start`` block of a start event."""

    streamSid: str = Field(..., description="Stream id echoed on outbound frames")
    callId: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("callId", "callSid"),
        description="Provider call identifier, for correlation only",
    )
    customParameters: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("streamSid")
    def validate_stream_sid(cls, v):
        if not v.strip():
            raise ValueError("streamSid cannot be empty")
        return v

    @field_validator("customParameters", mode="before")
    def null_parameters_to_empty(cls, v):
        return {} if v is None else v


class StartEvent(TelephonyEvent):
    """Model for the ``start`` event that opens a media stream."""

    event: Literal["start"]
    start: StartMetadata
    streamSid: Optional[str] = None


class MediaPayload(BaseModel):
    payload: str = Field(..., description="Base64-encoded audio data")
    track: Optional[str] = None
    chunk: Optional[str] = None
    timestamp: Optional[str] = None

    @field_validator("payload")
    def validate_payload(cls, v):
        return validate_base64_payload(v)


class MediaEvent(TelephonyEvent):
    """Model for a ``media`` event carrying one inbound audio chunk."""

    event: Literal["media"]
    media: MediaPayload
    streamSid: Optional[str] = None


class StopEvent(TelephonyEvent):
    """Model for the ``stop`` event that ends the media stream."""

    event: Literal["stop"]
    stop: Optional[Dict[str, Any]] = None
    streamSid: Optional[str] = None


class UnrecognizedTelephonyEvent(TelephonyEvent):
    """Any event the bridge does not act on."""


# Outbound messages
class OutboundMediaBody(BaseModel):
    payload: str


class OutboundMediaMessage(BaseModel):
    """Audio frame sent to the telephony leg."""

    event: Literal["media"] = TELEPHONY_EVENT_MEDIA
    streamSid: str
    media: OutboundMediaBody


class ClearMessage(BaseModel):
    """Instructs the telephony leg to drop audio queued for playback."""

    event: Literal["clear"] = TELEPHONY_EVENT_CLEAR
    streamSid: str


TELEPHONY_EVENT_MODELS = {
    TELEPHONY_EVENT_START: StartEvent,
    TELEPHONY_EVENT_MEDIA: MediaEvent,
    TELEPHONY_EVENT_STOP: StopEvent,
}


def parse_telephony_event(raw: str) -> TelephonyEvent:
    """
    Parse one text frame from the telephony leg.

    Args:
        raw: The JSON text frame

    Returns:
        The typed event, or ``UnrecognizedTelephonyEvent`` for events the
        bridge does not handle

    Raises:
        ProtocolParseError: If the frame is not JSON or fails validation
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolParseError(LEG, f"invalid JSON: {e}")
    if not isinstance(data, dict):
        raise ProtocolParseError(LEG, "frame is not a JSON object")

    event = data.get("event")
    model = UnrecognizedTelephonyEvent
    if isinstance(event, str):
        model = TELEPHONY_EVENT_MODELS.get(event, UnrecognizedTelephonyEvent)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ProtocolParseError(LEG, str(e))
