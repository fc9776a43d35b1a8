"""
Models module for both call legs and the per-call session state.

Key components:
- telephony_schemas: Pydantic models for the telephony media stream events
  (``start``, ``media``, ``stop``) and the frames sent back (``media``, ``clear``).
- convai_schemas: Pydantic models for the ElevenLabs Conversational AI messages,
  including the audio payload resolved from either wire shape.
- session: lifecycle enums and the immutable ``SessionVariables`` captured at
  stream start.

Usage examples:
```python
from call_relay.models.telephony_schemas import parse_telephony_event, StartEvent

event = parse_telephony_event(raw_frame)
if isinstance(event, StartEvent):
    variables = SessionVariables.from_custom_parameters(event.start.customParameters)
```
"""

from call_relay.models.convai_schemas import (
    AgentResponseEvent,
    AudioEvent,
    ConvAIMessage,
    ConversationInitiationClientData,
    ConversationInitiationMetadataEvent,
    InterruptionEvent,
    PingEvent,
    PongMessage,
    UnrecognizedConvAIMessage,
    UserAudioChunkMessage,
    UserTranscriptEvent,
    parse_convai_message,
)
from call_relay.models.session import (
    AiLegState,
    SessionState,
    SessionVariables,
    TelephonyLegState,
)
from call_relay.models.telephony_schemas import (
    ClearMessage,
    MediaEvent,
    OutboundMediaMessage,
    StartEvent,
    StopEvent,
    TelephonyEvent,
    UnrecognizedTelephonyEvent,
    parse_telephony_event,
)
