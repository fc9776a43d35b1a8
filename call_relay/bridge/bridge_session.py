"""
Bridge between a telephony media stream and an ElevenLabs Conversational AI session.

A ``BridgeSession`` owns both WebSocket legs of one phone call. It waits for the
telephony ``start`` event, opens the AI leg with a freshly signed URL, sends the
per-call initiation message and then relays audio and control events in both
directions until either leg goes away.
"""

import asyncio
import logging
import uuid
from typing import Optional

import websockets
from fastapi import WebSocket
from pydantic import BaseModel
from starlette.websockets import WebSocketDisconnect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException

from call_relay.config.constants import (
    AI_MESSAGE_VAD_SCORE,
    AI_WS_CLOSE_TIMEOUT,
    AI_WS_MAX_SIZE,
    LOGGER_NAME,
    TELEPHONY_EVENT_CONNECTED,
    TELEPHONY_EVENT_DTMF,
    TELEPHONY_EVENT_MARK,
)
from call_relay.config.settings import RelaySettings
from call_relay.exceptions import (
    ProtocolParseError,
    SetupFailure,
    SignedUrlError,
    TransportError,
)
from call_relay.models.convai_schemas import (
    AgentResponseEvent,
    AudioEvent,
    ConversationInitiationMetadataEvent,
    InterruptionEvent,
    PingEvent,
    PongMessage,
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
    OutboundMediaBody,
    OutboundMediaMessage,
    StartEvent,
    StopEvent,
    parse_telephony_event,
)
from call_relay.services.signed_url import SignedUrlResolver

logger = logging.getLogger(LOGGER_NAME)

# Once a session is winding down, nothing from either leg is acted on
WINDING_DOWN = (SessionState.CLOSING, SessionState.CLOSED)

QUIET_TELEPHONY_EVENTS = {
    TELEPHONY_EVENT_CONNECTED,
    TELEPHONY_EVENT_MARK,
    TELEPHONY_EVENT_DTMF,
}

# Sent many times per second; not worth a log line
QUIET_AI_MESSAGES = {AI_MESSAGE_VAD_SCORE}


class BridgeSession:
    """
    One phone call bridged to one AI conversation.

    This class handles:
    - The session state machine (initializing, awaiting AI connection,
      active, closing, closed)
    - Translating telephony events into AI messages and back
    - Answering the AI backend's keepalive pings
    - Tearing down both legs exactly once, whichever side ends the call
    """

    def __init__(
        self,
        telephony_ws: WebSocket,
        resolver: SignedUrlResolver,
        settings: RelaySettings,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.telephony_ws = telephony_ws
        self.resolver = resolver
        self.settings = settings
        self.ai_ws = None

        self.call_id: Optional[str] = None
        self.stream_id: Optional[str] = None
        self.session_variables: Optional[SessionVariables] = None

        self.state = SessionState.INITIALIZING
        self.ai_leg_state = AiLegState.UNCONNECTED
        self.telephony_leg_state = TelephonyLegState.OPEN

        self.frames_to_ai = 0
        self.frames_to_telephony = 0
        self.dropped_frames = 0

        self._closing = asyncio.Event()
        self._close_lock = asyncio.Lock()
        self._telephony_task: Optional[asyncio.Task] = None
        self._ai_task: Optional[asyncio.Task] = None

    @property
    def log_prefix(self) -> str:
        if self.stream_id:
            return f"[{self.session_id}] [{self.stream_id}]"
        return f"[{self.session_id}]"

    async def run(self) -> None:
        """
        Relay the call until either leg ends it, then tear everything down.

        The telephony websocket must already be accepted.
        """
        self._telephony_task = asyncio.create_task(self._telephony_loop())
        closing = asyncio.create_task(self._closing.wait())
        try:
            await asyncio.wait(
                {self._telephony_task, closing}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            closing.cancel()
            await self.close()

    def _request_close(self, reason: str) -> None:
        if self.state in WINDING_DOWN:
            return
        logger.info(f"{self.log_prefix} Closing session: {reason}")
        self.state = SessionState.CLOSING
        self._closing.set()

    # Telephony leg
    async def _telephony_loop(self) -> None:
        try:
            while self.state not in WINDING_DOWN:
                raw = await self._receive_telephony_frame()
                if raw is None:
                    logger.warning(f"{self.log_prefix} Dropping non-text telephony frame")
                    continue
                await self.handle_telephony_message(raw)
        except WebSocketDisconnect as e:
            self.telephony_leg_state = TelephonyLegState.CLOSED
            logger.info(f"{self.log_prefix} Telephony leg disconnected (code {e.code})")
            self._request_close("telephony leg disconnected")
        except (RuntimeError, OSError) as e:
            self.telephony_leg_state = TelephonyLegState.CLOSED
            logger.error(f"{self.log_prefix} {TransportError('telephony', str(e))}")
            self._request_close("telephony transport error")

    async def _receive_telephony_frame(self) -> Optional[str]:
        """
        Wait for the next frame on the telephony leg.

        Returns:
            The text of the frame, or None for a binary frame

        Raises:
            WebSocketDisconnect: If the provider closed the socket
        """
        message = await self.telephony_ws.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))
        return message.get("text")

    async def handle_telephony_message(self, raw: str) -> None:
        """
        Act on one frame from the telephony leg.

        Args:
            raw: The JSON text frame
        """
        if self.state in WINDING_DOWN:
            logger.debug(f"{self.log_prefix} Ignoring telephony frame after close")
            return

        try:
            event = parse_telephony_event(raw)
        except ProtocolParseError as e:
            logger.warning(f"{self.log_prefix} Dropping telephony frame: {e}")
            return

        if isinstance(event, StartEvent):
            self._handle_start(event)
        elif isinstance(event, MediaEvent):
            await self._handle_media(event)
        elif isinstance(event, StopEvent):
            await self._handle_stop()
        elif event.event in QUIET_TELEPHONY_EVENTS:
            logger.debug(f"{self.log_prefix} Telephony event: {event.event}")
        else:
            logger.warning(f"{self.log_prefix} Unrecognized telephony event: {event.event}")

    def _handle_start(self, event: StartEvent) -> None:
        if self.state is not SessionState.INITIALIZING:
            logger.warning(f"{self.log_prefix} Ignoring repeated start event")
            return

        self.stream_id = event.start.streamSid
        self.call_id = event.start.callId
        self.session_variables = SessionVariables.from_custom_parameters(
            event.start.customParameters
        )
        self.state = SessionState.AWAITING_AI_CONNECTION
        logger.info(f"{self.log_prefix} Stream started for call {self.call_id}")

        self._ai_task = asyncio.create_task(self._run_ai_leg())

    async def _handle_media(self, event: MediaEvent) -> None:
        if self.ai_leg_state is not AiLegState.OPEN:
            self.dropped_frames += 1
            return
        if await self._send_to_ai(UserAudioChunkMessage(user_audio_chunk=event.media.payload)):
            self.frames_to_ai += 1

    async def _handle_stop(self) -> None:
        logger.info(f"{self.log_prefix} Telephony stream stopped")
        self._request_close("telephony stop event")
        await self._close_ai_leg()

    async def _send_to_telephony(self, message: BaseModel) -> bool:
        if self.telephony_leg_state is not TelephonyLegState.OPEN:
            self.dropped_frames += 1
            return False
        try:
            await self.telephony_ws.send_text(message.model_dump_json())
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            self.telephony_leg_state = TelephonyLegState.CLOSED
            logger.error(f"{self.log_prefix} {TransportError('telephony', str(e))}")
            self._request_close("telephony transport error")
            return False
        return True

    # AI leg
    async def _run_ai_leg(self) -> None:
        try:
            await self._open_ai_leg()
        except SetupFailure as e:
            self.ai_leg_state = AiLegState.CLOSED
            logger.error(f"{self.log_prefix} Session setup failed: {e}")
            self._request_close("setup failure")
            return
        except Exception as e:
            self.ai_leg_state = AiLegState.CLOSED
            logger.error(
                f"{self.log_prefix} Unexpected error opening AI leg: {e}", exc_info=True
            )
            self._request_close("setup failure")
            return

        if self.ai_leg_state is AiLegState.OPEN:
            await self._ai_loop()

    async def _open_ai_leg(self) -> None:
        """
        Resolve a signed URL, connect the AI leg and send the initiation message.

        Raises:
            SetupFailure: If no agent is configured, the signed URL cannot be
                obtained or the AI leg cannot be opened
        """
        if self.state is not SessionState.AWAITING_AI_CONNECTION:
            return
        agent_id = self.session_variables.agent_id or self.settings.elevenlabs_agent_id
        if not agent_id:
            raise SetupFailure("no agent id configured for this call")

        self.ai_leg_state = AiLegState.CONNECTING
        try:
            signed_url = await self.resolver.resolve_signed_url(agent_id)
        except (SignedUrlError, ValueError) as e:
            raise SetupFailure(f"could not resolve signed URL: {e}") from e

        if self.state is not SessionState.AWAITING_AI_CONNECTION:
            self.ai_leg_state = AiLegState.CLOSED
            return

        try:
            ai_ws = await websockets.connect(
                signed_url, max_size=AI_WS_MAX_SIZE, close_timeout=AI_WS_CLOSE_TIMEOUT
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise SetupFailure(f"could not open AI leg: {e}") from e

        if self.state is not SessionState.AWAITING_AI_CONNECTION:
            # The call ended while we were connecting
            await ai_ws.close()
            self.ai_leg_state = AiLegState.CLOSED
            return

        self.ai_ws = ai_ws
        self.state = SessionState.ACTIVE
        initiation = self.session_variables.to_initiation_message(self.settings)
        try:
            await ai_ws.send(initiation.model_dump_json())
        except ConnectionClosed as e:
            raise SetupFailure(f"AI leg closed before initiation: {e}") from e

        if self.state is not SessionState.ACTIVE:
            # Stopped while the initiation was in flight; the leg is already closed
            return
        self.ai_leg_state = AiLegState.OPEN
        logger.info(f"{self.log_prefix} AI leg open for agent {agent_id}")

    async def _ai_loop(self) -> None:
        try:
            async for raw in self.ai_ws:
                await self.handle_ai_message(raw)
                if self.state in WINDING_DOWN:
                    break
            logger.info(f"{self.log_prefix} AI leg closed")
        except ConnectionClosedError as e:
            logger.error(f"{self.log_prefix} {TransportError('ai', str(e))}")
        finally:
            self.ai_leg_state = AiLegState.CLOSED
            self._request_close("AI leg closed")

    async def handle_ai_message(self, raw) -> None:
        """
        Act on one frame from the AI leg.

        Args:
            raw: The JSON frame, text or bytes
        """
        if self.state in WINDING_DOWN:
            logger.debug(f"{self.log_prefix} Ignoring AI frame after close")
            return

        try:
            message = parse_convai_message(raw)
        except ProtocolParseError as e:
            logger.warning(f"{self.log_prefix} Dropping AI frame: {e}")
            return

        if isinstance(message, AudioEvent):
            await self._forward_agent_audio(message)
        elif isinstance(message, InterruptionEvent):
            await self._clear_telephony_audio()
        elif isinstance(message, PingEvent):
            await self._send_to_ai(PongMessage(event_id=message.event_id))
        elif isinstance(message, AgentResponseEvent):
            logger.info(f"{self.log_prefix} Agent: {message.agent_response[:200]}")
        elif isinstance(message, UserTranscriptEvent):
            logger.info(f"{self.log_prefix} Caller: {message.user_transcript[:200]}")
        elif isinstance(message, ConversationInitiationMetadataEvent):
            logger.info(
                f"{self.log_prefix} AI conversation started: {message.conversation_id}"
            )
        elif message.type not in QUIET_AI_MESSAGES:
            logger.info(f"{self.log_prefix} Unrecognized AI message: {message.type}")

    async def _forward_agent_audio(self, message: AudioEvent) -> None:
        if not self.stream_id:
            self.dropped_frames += 1
            return
        outbound = OutboundMediaMessage(
            streamSid=self.stream_id,
            media=OutboundMediaBody(payload=message.audio_base_64),
        )
        if await self._send_to_telephony(outbound):
            self.frames_to_telephony += 1

    async def _clear_telephony_audio(self) -> None:
        if not self.stream_id:
            return
        logger.info(f"{self.log_prefix} Caller interrupted, clearing queued audio")
        await self._send_to_telephony(ClearMessage(streamSid=self.stream_id))

    async def _send_to_ai(self, message: BaseModel) -> bool:
        if self.ai_leg_state is not AiLegState.OPEN or self.ai_ws is None:
            return False
        try:
            await self.ai_ws.send(message.model_dump_json())
        except ConnectionClosed as e:
            self.ai_leg_state = AiLegState.CLOSED
            logger.error(f"{self.log_prefix} {TransportError('ai', str(e))}")
            self._request_close("AI transport error")
            return False
        return True

    # Teardown
    async def _close_ai_leg(self) -> None:
        self.ai_leg_state = AiLegState.CLOSED
        if self.ai_ws is not None:
            await self.ai_ws.close()

    async def _close_telephony_leg(self) -> None:
        if self.telephony_leg_state is TelephonyLegState.CLOSED:
            return
        self.telephony_leg_state = TelephonyLegState.CLOSED
        try:
            await self.telephony_ws.close()
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.debug(f"{self.log_prefix} Telephony leg already closed: {e}")

    async def close(self) -> None:
        """Close both legs and stop both loops. Safe to call more than once."""
        async with self._close_lock:
            if self.state is SessionState.CLOSED:
                return
            self.state = SessionState.CLOSING
            self._closing.set()

            current = asyncio.current_task()
            tasks = [
                task
                for task in (self._telephony_task, self._ai_task)
                if task is not None and task is not current
            ]
            for task in tasks:
                task.cancel()
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(
                        f"{self.log_prefix} Relay task failed: {result}", exc_info=result
                    )

            await self._close_ai_leg()
            await self._close_telephony_leg()
            self.state = SessionState.CLOSED
            logger.info(
                f"{self.log_prefix} Session closed: {self.frames_to_ai} frames to AI, "
                f"{self.frames_to_telephony} frames to telephony, "
                f"{self.dropped_frames} dropped"
            )
