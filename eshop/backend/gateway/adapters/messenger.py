"""
Messenger Channel Adapter.

Relays chat messages to a Facebook page conversation through the Graph API
Send endpoint.
"""

import httpx

from eshop.backend.core.config import get_app_config
from eshop.backend.core.exceptions import ExternalServiceError
from eshop.backend.core.logging import get_logger, log_with_source
from eshop.backend.core.resilience import call_with_resilience
from eshop.backend.gateway.adapters.base import ChannelAdapter, DeliveryResult, RelayMessage

logger = get_logger(__name__)

MESSENGER_MAX_MESSAGE_LENGTH = 2000


class MessengerAdapter(ChannelAdapter):
    def __init__(self, page_token: str, recipient_id: str, client: httpx.AsyncClient | None = None) -> None:
        self._page_token = page_token
        self._recipient_id = recipient_id
        self._client = client

    @property
    def channel_name(self) -> str:
        return "messenger"

    @property
    def max_message_length(self) -> int:
        return MESSENGER_MAX_MESSAGE_LENGTH

    @property
    def endpoint(self) -> str:
        config = get_app_config().channels.messenger
        return f"{config.graph_api_url.rstrip('/')}/{config.api_version}/me/messages"

    async def _post(self, client: httpx.AsyncClient, text: str) -> httpx.Response:
        return await client.post(
            self.endpoint,
            params={"access_token": self._page_token},
            json={"recipient": {"id": self._recipient_id}, "message": {"text": text}},
        )

    async def _send_chunk(self, text: str) -> str | None:
        timeout = get_app_config().channels.messenger.request_timeout_seconds
        if self._client is not None:
            response = await call_with_resilience(
                "messenger", self._post, self._client, text,
                retry_on=(httpx.TransportError,), timeout=timeout,
            )
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await call_with_resilience(
                    "messenger", self._post, client, text,
                    retry_on=(httpx.TransportError,), timeout=timeout,
                )

        try:
            data = response.json()
        except ValueError:
            data = {}

        error = data.get("error") if isinstance(data, dict) else None
        if response.is_error or error:
            detail = error.get("message") if isinstance(error, dict) else None
            raise ExternalServiceError(
                f"Messenger API error: {detail or response.reason_phrase or response.status_code}"
            )
        return data.get("message_id")

    async def deliver(self, message: RelayMessage) -> DeliveryResult:
        chunks = self.chunk_message(self.format_text(message))
        first_id: str | None = None
        try:
            for chunk in chunks:
                message_id = await self._send_chunk(chunk)
                if first_id is None:
                    first_id = message_id
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Messenger API error: {e}") from e

        log_with_source(
            logger,
            "messenger",
            "info",
            "Chat message relayed to Messenger",
            session_key=message.session_key,
            message_id=first_id,
        )
        return DeliveryResult(channel=self.channel_name, external_message_id=first_id)
