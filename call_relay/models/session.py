"""
Session state for a single bridged call.

Defines the lifecycle enums of a bridge session and its legs, plus the
per-call ``SessionVariables`` captured from the telephony start event and
turned into the AI leg's initiation message.
"""

import json
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from call_relay.config.constants import (
    PARAM_AGENT_ID,
    PARAM_CALLER_ID,
    PARAM_FIRST_MESSAGE,
    PARAM_NAME,
    PARAM_PROMPT,
)
from call_relay.config.settings import RelaySettings
from call_relay.models.convai_schemas import (
    AgentOverride,
    ConversationConfigOverride,
    ConversationInitiationClientData,
    PromptOverride,
)

KNOWN_PARAMETERS = {
    PARAM_NAME,
    PARAM_CALLER_ID,
    PARAM_PROMPT,
    PARAM_FIRST_MESSAGE,
    PARAM_AGENT_ID,
}


class SessionState(str, Enum):
    INITIALIZING = "initializing"
    AWAITING_AI_CONNECTION = "awaiting_ai_connection"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class AiLegState(str, Enum):
    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class TelephonyLegState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _text(value: Any) -> Optional[str]:
    """Text field value; strings pass through untouched, other values as JSON."""
    if _is_blank(value):
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value)


class SessionVariables(BaseModel):
    """
    Per-call customization captured from the telephony ``start`` event.

    Immutable once built. Unset fields are filled from ``RelaySettings``
    defaults only when the initiation message is rendered.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    caller_id: Optional[str] = None
    prompt: Optional[str] = None
    first_message: Optional[str] = None
    agent_id: Optional[str] = None
    extra: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def from_custom_parameters(cls, params: Mapping[str, Any]) -> "SessionVariables":
        """
        Build session variables from the start event's ``customParameters``.

        Known keys map to dedicated fields; any other non-blank parameter is
        kept, value unchanged, as an extra dynamic variable.
        """
        extra = tuple(
            sorted(
                (
                    (str(key), value)
                    for key, value in params.items()
                    if key not in KNOWN_PARAMETERS and not _is_blank(value)
                ),
                key=lambda item: item[0],
            )
        )
        return cls(
            name=_text(params.get(PARAM_NAME)),
            caller_id=_text(params.get(PARAM_CALLER_ID)),
            prompt=_text(params.get(PARAM_PROMPT)),
            first_message=_text(params.get(PARAM_FIRST_MESSAGE)),
            agent_id=_text(params.get(PARAM_AGENT_ID)),
            extra=extra,
        )

    def dynamic_variables(self, settings: RelaySettings) -> Dict[str, Any]:
        variables = dict(self.extra)
        variables[PARAM_NAME] = self.name or settings.default_name
        if self.caller_id:
            variables[PARAM_CALLER_ID] = self.caller_id
        return variables

    def to_initiation_message(
        self, settings: RelaySettings
    ) -> ConversationInitiationClientData:
        """Render the one-time initiation message for the AI leg."""
        return ConversationInitiationClientData(
            dynamic_variables=self.dynamic_variables(settings),
            conversation_config_override=ConversationConfigOverride(
                agent=AgentOverride(
                    prompt=PromptOverride(prompt=self.prompt or settings.default_prompt),
                    first_message=self.first_message or settings.default_first_message,
                )
            ),
        )
