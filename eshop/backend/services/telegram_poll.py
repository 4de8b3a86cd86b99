"""
Telegram Reply Poller.

Pulls bot updates with getUpdates and threads staff replies from the
Telegram group back into chat sessions. A reply is matched to a session by
the `[CS:<key>]` tag the relayed message carries, by the
`/reply <key> <text>` command, or by an inline tag in the reply itself.

Usage:
    async with session_scope() as session:
        result = await TelegramPoller(session).poll_once()

    await run_poll_loop(interval_seconds=5)
"""

import asyncio
import re
from dataclasses import dataclass
from functools import partial
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.config import get_app_config
from eshop.backend.core.database import session_scope
from eshop.backend.core.exceptions import ExternalServiceError
from eshop.backend.core.logging import get_logger, log_with_source
from eshop.backend.core.resilience import call_with_resilience
from eshop.backend.gateway.adapters.telegram import create_bot, resolve_bot_token
from eshop.backend.services.base import BaseService
from eshop.backend.services.chat import ChatService, channel_enabled
from eshop.backend.services.config_store import TELEGRAM_OFFSET_KEY, ConfigStoreService

logger = get_logger(__name__)

SESSION_TAG = re.compile(r"\[CS:([^\]]+)\]", re.IGNORECASE)
REPLY_COMMAND = re.compile(r"^/(?:reply|odpoved)\s+(\S+)\s+([\s\S]+)", re.IGNORECASE)


@dataclass(frozen=True)
class MatchedReply:
    session_key: str
    content: str


def extract_session_key(text: str | None) -> str | None:
    """Key from the first `[CS:...]` tag, trimmed."""
    if not text:
        return None
    match = SESSION_TAG.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def _message_text(message: Any) -> str:
    return (getattr(message, "text", None) or getattr(message, "caption", None) or "").strip()


def match_reply(message: Any) -> MatchedReply | None:
    """
    Session key and reply text for an inbound group message.

    Tried in order: a reply to a relayed message, the reply command, an
    inline tag. Returns None when no key is found or the text is empty.
    """
    text = _message_text(message)

    replied_to = getattr(message, "reply_to_message", None)
    if replied_to is not None:
        key = extract_session_key(_message_text(replied_to))
        if key:
            return MatchedReply(key, text) if text else None

    command = REPLY_COMMAND.match(text)
    if command:
        content = command.group(2).strip()
        return MatchedReply(command.group(1).strip(), content) if content else None

    key = extract_session_key(text)
    if key:
        content = SESSION_TAG.sub("", text).strip()
        return MatchedReply(key, content) if content else None

    return None


def allowed_chat_ids(group_id: str, chat_id: str) -> set[str]:
    return {value.strip() for value in (group_id, chat_id) if value and value.strip()}


class TelegramPoller(BaseService):
    """One getUpdates pass per `poll_once` call."""

    def __init__(self, session: AsyncSession, bot: Any | None = None) -> None:
        super().__init__(session)
        self.chat = ChatService(session)
        self.store = ConfigStoreService(session)
        self._bot = bot

    async def _read_offset(self) -> int:
        value = await self.store.read(TELEGRAM_OFFSET_KEY, 0)
        try:
            return max(int(value), 0)
        except (TypeError, ValueError):
            return 0

    async def _fetch_updates(self, bot: Any, offset: int) -> list[Any]:
        from aiogram.exceptions import TelegramAPIError, TelegramNetworkError

        channel_config = get_app_config().channels.telegram
        kwargs: dict[str, Any] = {"allowed_updates": ["message"]}
        if offset > 0:
            kwargs["offset"] = offset
        # long-poll timeout goes to getUpdates, the wrapper's timeout bounds the whole call
        get_updates = partial(bot.get_updates, timeout=channel_config.poll_timeout_seconds, **kwargs)

        try:
            return list(
                await call_with_resilience(
                    "telegram",
                    get_updates,
                    retry_on=(TelegramNetworkError,),
                    timeout=channel_config.request_timeout_seconds + channel_config.poll_timeout_seconds,
                )
            )
        except TelegramAPIError as e:
            raise ExternalServiceError(f"Telegram getUpdates error: {e}") from e

    async def _handle_update(self, update: Any, allowed: set[str]) -> bool:
        message = getattr(update, "message", None)
        if message is None or str(message.chat.id) not in allowed:
            return False

        reply = match_reply(message)
        if reply is None:
            return False

        chat_session = await self.chat.sessions.get_by_key(reply.session_key)
        if chat_session is None:
            self._log_debug("Reply for unknown chat session", session_key=reply.session_key)
            return False
        if await self.chat.messages.exists_for_update(update.update_id):
            return False

        await self.chat.add_agent_message(
            chat_session.session_key,
            reply.content,
            telegram_message_id=message.message_id,
            telegram_update_id=update.update_id,
        )
        return True

    async def poll_once(self) -> dict[str, int]:
        """
        Fetch pending updates and store matched replies.

        Returns {"processed": n, "next_offset": offset}; the offset is
        persisted when it moves.
        """
        settings = await self.chat.get_settings()
        allowed = allowed_chat_ids(settings.telegram_group_id, settings.telegram_chat_id)
        offset = await self._read_offset()
        token = resolve_bot_token(settings.telegram_bot_token)

        if not channel_enabled("telegram") or (self._bot is None and not token) or not allowed:
            return {"processed": 0, "next_offset": offset}

        bot = self._bot or create_bot(token)
        try:
            updates = await self._fetch_updates(bot, offset)
        finally:
            if self._bot is None:
                await bot.session.close()

        processed = 0
        max_update_id: int | None = None
        for update in updates:
            max_update_id = update.update_id if max_update_id is None else max(max_update_id, update.update_id)
            if await self._handle_update(update, allowed):
                processed += 1

        next_offset = max_update_id + 1 if max_update_id is not None else offset
        if next_offset != offset:
            await self.store.write(TELEGRAM_OFFSET_KEY, next_offset)

        log_with_source(
            logger,
            "telegram",
            "info" if processed else "debug",
            "Telegram poll pass finished",
            updates=len(updates),
            processed=processed,
            next_offset=next_offset,
        )
        return {"processed": processed, "next_offset": next_offset}


async def run_poll_loop(interval_seconds: float, stop_event: asyncio.Event | None = None) -> None:
    """
    Poll until cancelled or `stop_event` is set.

    Each pass runs in its own session and transaction. A failed pass is
    logged and the loop continues.
    """
    stop_event = stop_event or asyncio.Event()
    log_with_source(logger, "telegram", "info", "Telegram poll loop started", interval_seconds=interval_seconds)

    while not stop_event.is_set():
        try:
            async with session_scope() as session:
                await TelegramPoller(session).poll_once()
        except Exception as e:
            log_with_source(logger, "telegram", "error", "Telegram poll pass failed", error=str(e))

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except TimeoutError:
            pass

    log_with_source(logger, "telegram", "info", "Telegram poll loop stopped")
