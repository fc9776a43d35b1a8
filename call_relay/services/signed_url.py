"""
Session credential resolver for the ElevenLabs Conversational AI backend.

Exchanges an agent id for a short-lived signed WebSocket URL. Each URL is good
for one connection attempt, so results are never cached and failures are never
retried here.
"""

import logging
from typing import Optional

import httpx

from call_relay.config.constants import LOGGER_NAME, SIGNED_URL_PATH
from call_relay.config.settings import RelaySettings
from call_relay.exceptions import MalformedResponse, SignedUrlError, UpstreamUnavailable

logger = logging.getLogger(LOGGER_NAME)


class SignedUrlResolver:
    """
    Client for the control endpoint that issues signed conversation URLs.

    One authenticated GET per call; holds no per-call state.
    """

    def __init__(
        self,
        settings: RelaySettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            settings: Relay settings providing the API key, base URL and timeout
            transport: Optional httpx transport, used to substitute the network
        """
        self.settings = settings
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.settings.elevenlabs_api_base}{SIGNED_URL_PATH}"

    async def resolve_signed_url(self, agent_id: str) -> str:
        """
        Obtain a signed WebSocket URL for one conversation with ``agent_id``.

        Args:
            agent_id: The ElevenLabs agent identifier

        Returns:
            The signed ``wss://`` URL

        Raises:
            ValueError: If ``agent_id`` is empty
            SignedUrlError: If no API key is configured
            UpstreamUnavailable: On network failure or a non-2xx response
            MalformedResponse: If the body lacks a usable ``signed_url``
        """
        if not agent_id or not agent_id.strip():
            raise ValueError("agent_id is required")
        api_key = self.settings.elevenlabs_api_key
        if not api_key:
            raise SignedUrlError("ELEVENLABS_API_KEY is not configured")

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.signed_url_timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    self.endpoint,
                    params={"agent_id": agent_id},
                    headers={"xi-api-key": api_key},
                )
        except httpx.HTTPError as e:
            logger.error(f"Signed URL request failed for agent {agent_id}: {e}")
            raise UpstreamUnavailable(f"Signed URL request failed: {e}") from e

        if not response.is_success:
            logger.error(
                f"Signed URL request for agent {agent_id} returned "
                f"{response.status_code}: {response.text[:200]}"
            )
            raise UpstreamUnavailable(
                f"Signed URL request returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponse(f"Signed URL response is not JSON: {e}") from e

        signed_url = body.get("signed_url") if isinstance(body, dict) else None
        if not isinstance(signed_url, str) or not signed_url:
            raise MalformedResponse("Signed URL response has no signed_url field")

        logger.info(f"Obtained signed URL for agent {agent_id}")
        return signed_url
