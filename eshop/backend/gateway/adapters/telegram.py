"""
Telegram Channel Adapter.

Relays chat messages into the staff Telegram group through the aiogram Bot
API client. The same bot is used by the reply poller (services.telegram_poll).
"""

from typing import TYPE_CHECKING

from eshop.backend.core.config import get_app_config, get_settings
from eshop.backend.core.exceptions import ConfigurationError, ExternalServiceError
from eshop.backend.core.logging import get_logger, log_with_source
from eshop.backend.core.resilience import call_with_resilience
from eshop.backend.gateway.adapters.base import ChannelAdapter, DeliveryResult, RelayMessage

if TYPE_CHECKING:
    from aiogram import Bot

logger = get_logger(__name__)

TELEGRAM_MAX_MESSAGE_LENGTH = 4096


def resolve_bot_token(settings_token: str | None) -> str:
    """Token from chat settings, else the TELEGRAM_BOT_TOKEN secret."""
    return (settings_token or "").strip() or get_settings().telegram_bot_token.strip()


def create_bot(token: str) -> "Bot":
    """
    Create an aiogram Bot for one relay or poll pass.

    Raises:
        ConfigurationError: If no token is available
    """
    from aiogram import Bot
    from aiogram.client.session.aiohttp import AiohttpSession

    if not token:
        raise ConfigurationError("Telegram bot token nie je nastavený.")

    timeout = get_app_config().channels.telegram.request_timeout_seconds
    return Bot(token=token, session=AiohttpSession(timeout=timeout))


class TelegramAdapter(ChannelAdapter):
    """
    Telegram channel adapter.

    Sends plain text (no parse mode) so visitor input is never interpreted
    as markup. Long messages are chunked; the first chunk's id is reported.
    """

    def __init__(self, bot: "Bot", chat_id: str) -> None:
        self._bot = bot
        self._chat_id = chat_id

    @property
    def channel_name(self) -> str:
        return "telegram"

    @property
    def max_message_length(self) -> int:
        return TELEGRAM_MAX_MESSAGE_LENGTH

    async def close(self) -> None:
        await self._bot.session.close()

    async def deliver(self, message: RelayMessage) -> DeliveryResult:
        from aiogram.exceptions import TelegramAPIError, TelegramNetworkError

        chunks = self.chunk_message(self.format_text(message))
        first_id: str | None = None
        try:
            for chunk in chunks:
                sent = await call_with_resilience(
                    "telegram",
                    self._bot.send_message,
                    chat_id=self._chat_id,
                    text=chunk,
                    retry_on=(TelegramNetworkError,),
                    timeout=get_app_config().channels.telegram.request_timeout_seconds,
                )
                if first_id is None:
                    first_id = str(sent.message_id)
        except TelegramAPIError as e:
            log_with_source(
                logger,
                "telegram",
                "error",
                "Telegram relay failed",
                session_key=message.session_key,
                error=str(e),
            )
            raise ExternalServiceError(f"Telegram sendMessage error: {e}") from e

        log_with_source(
            logger,
            "telegram",
            "info",
            "Chat message relayed to Telegram",
            session_key=message.session_key,
            chunks=len(chunks),
            message_id=first_id,
        )
        return DeliveryResult(channel=self.channel_name, external_message_id=first_id)
