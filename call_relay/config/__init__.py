"""
Configuration module for the call relay.

Key components:
- constants: protocol strings for both call legs, logger name and defaults.
- logging_config: console and rotating-file logging for the ``call_relay`` logger.
- settings: environment-driven ``RelaySettings`` (API key, agent id, per-call
  defaults for the initiation message).

Usage examples:
```python
from call_relay.config.logging_config import configure_logging
from call_relay.config.settings import load_settings

logger = configure_logging()
settings = load_settings()
logger.info(f"Default agent configured: {bool(settings.elevenlabs_agent_id)}")
```
"""
