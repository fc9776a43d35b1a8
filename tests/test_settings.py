import pytest
from pydantic import ValidationError

from call_relay.config.constants import (
    DEFAULT_ELEVENLABS_API_BASE,
    DEFAULT_FIRST_MESSAGE,
    DEFAULT_NAME,
    DEFAULT_PROMPT,
    DEFAULT_SIGNED_URL_TIMEOUT,
)
from call_relay.config.settings import load_settings


def test_defaults_with_empty_environment():
    settings = load_settings({})

    assert settings.elevenlabs_api_key is None
    assert settings.elevenlabs_agent_id is None
    assert settings.elevenlabs_api_base == DEFAULT_ELEVENLABS_API_BASE
    assert settings.signed_url_timeout == DEFAULT_SIGNED_URL_TIMEOUT
    assert settings.default_name == DEFAULT_NAME
    assert settings.default_first_message == DEFAULT_FIRST_MESSAGE
    assert settings.default_prompt == DEFAULT_PROMPT


def test_values_read_from_environment():
    settings = load_settings(
        {
            "ELEVENLABS_API_KEY": "key",
            "ELEVENLABS_AGENT_ID": "agent_1",
            "ELEVENLABS_API_BASE": "http://localhost:9000/v1/",
            "ELEVENLABS_SIGNED_URL_TIMEOUT": "2.5",
            "RELAY_DEFAULT_NAME": "friend",
            "RELAY_DEFAULT_FIRST_MESSAGE": "Hey!",
            "RELAY_DEFAULT_PROMPT": "Be nice.",
        }
    )

    assert settings.elevenlabs_api_key == "key"
    assert settings.elevenlabs_agent_id == "agent_1"
    assert settings.elevenlabs_api_base == "http://localhost:9000/v1"
    assert settings.signed_url_timeout == 2.5
    assert settings.default_name == "friend"
    assert settings.default_first_message == "Hey!"
    assert settings.default_prompt == "Be nice."


def test_blank_credentials_are_unset():
    settings = load_settings({"ELEVENLABS_API_KEY": "", "ELEVENLABS_AGENT_ID": "  "})

    assert settings.elevenlabs_api_key is None
    assert settings.elevenlabs_agent_id is None


def test_invalid_timeout_rejected():
    with pytest.raises(ValidationError):
        load_settings({"ELEVENLABS_SIGNED_URL_TIMEOUT": "0"})
