"""
Services module for external API integrations.

Key components:
- signed_url: ``SignedUrlResolver``, which asks the ElevenLabs control API for a
  short-lived signed WebSocket URL before each AI leg is opened.

Usage examples:
```python
from call_relay.config.settings import load_settings
from call_relay.services.signed_url import SignedUrlResolver

resolver = SignedUrlResolver(load_settings())
signed_url = await resolver.resolve_signed_url("agent_123")
```
"""

from call_relay.services.signed_url import SignedUrlResolver

__all__ = ["SignedUrlResolver"]
