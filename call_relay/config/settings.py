"""
Environment-driven settings for the call relay.

Values are read from the process environment (populated from a ``.env`` file by
``call_relay.main`` when one exists) into a validated ``RelaySettings`` model.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from call_relay.config.constants import (
    DEFAULT_ELEVENLABS_API_BASE,
    DEFAULT_FIRST_MESSAGE,
    DEFAULT_NAME,
    DEFAULT_PROMPT,
    DEFAULT_SIGNED_URL_TIMEOUT,
)


class RelaySettings(BaseModel):
    """Runtime configuration shared by every bridge session."""

    elevenlabs_api_key: Optional[str] = Field(
        None, description="Key sent as xi-api-key to the ElevenLabs control API"
    )
    elevenlabs_agent_id: Optional[str] = Field(
        None, description="Agent used when the call does not name one"
    )
    elevenlabs_api_base: str = Field(DEFAULT_ELEVENLABS_API_BASE)
    signed_url_timeout: float = Field(DEFAULT_SIGNED_URL_TIMEOUT, gt=0)
    default_name: str = Field(DEFAULT_NAME)
    default_first_message: str = Field(DEFAULT_FIRST_MESSAGE)
    default_prompt: str = Field(DEFAULT_PROMPT)

    @field_validator("elevenlabs_api_key", "elevenlabs_agent_id")
    def blank_to_none(cls, v):
        """Treat empty environment values as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("elevenlabs_api_base")
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> RelaySettings:
    """
    Build settings from environment variables.

    Args:
        environ: Mapping to read from; defaults to ``os.environ``

    Returns:
        RelaySettings: The validated settings
    """
    env = os.environ if environ is None else environ
    values = {
        "elevenlabs_api_key": env.get("ELEVENLABS_API_KEY"),
        "elevenlabs_agent_id": env.get("ELEVENLABS_AGENT_ID"),
        "elevenlabs_api_base": env.get("ELEVENLABS_API_BASE"),
        "signed_url_timeout": env.get("ELEVENLABS_SIGNED_URL_TIMEOUT"),
        "default_name": env.get("RELAY_DEFAULT_NAME"),
        "default_first_message": env.get("RELAY_DEFAULT_FIRST_MESSAGE"),
        "default_prompt": env.get("RELAY_DEFAULT_PROMPT"),
    }
    # Unset variables fall back to the model defaults
    return RelaySettings(**{k: v for k, v in values.items() if v is not None})
