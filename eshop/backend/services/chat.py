"""
Chat Service.

Live-chat sessions for the storefront widget. Visitor messages are stored
and relayed to staff over Telegram, Messenger or email; staff replies come
back as agent messages (admin panel or the Telegram poller).
"""

import uuid
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.config import get_app_config
from eshop.backend.core.exceptions import (
    ConfigurationError,
    NotFoundError,
    ValidationError,
)
from eshop.backend.core.logging import get_logger
from eshop.backend.core.utils import blank_to_none, utc_now
from eshop.backend.gateway.adapters import ChannelAdapter, DeliveryResult, RelayMessage
from eshop.backend.models.chat import ChatMessage, ChatSession, MessageDirection, SessionStatus
from eshop.backend.repositories.chat import ChatMessageRepository, ChatSessionRepository
from eshop.backend.schemas.chat import VisitorProfile
from eshop.backend.schemas.settings import ChatSettings
from eshop.backend.services.base import BaseService
from eshop.backend.services.config_store import CHAT_SETTINGS_KEY, ConfigStoreService

logger = get_logger(__name__)

SESSION_MISSING = "Relácia neexistuje"
EMPTY_MESSAGE = "Správa nemôže byť prázdna."
DEFAULT_TIMEZONE = "Europe/Bratislava"


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown chat timezone, using default", extra={"timezone": name})
        return ZoneInfo(DEFAULT_TIMEZONE)


def is_online(settings: ChatSettings, now: datetime | None = None) -> bool:
    """
    Whether staff are available.

    `now` is converted to the settings timezone (naive values are UTC) and
    matched against the schedule entries for that weekday, end exclusive.
    """
    if settings.always_online:
        return True

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(_zone(settings.timezone))

    day = (local.weekday() + 1) % 7
    clock = local.strftime("%H:%M")
    return any(entry.day == day and entry.start <= clock < entry.end for entry in settings.online_hours)


def telegram_target(settings: ChatSettings) -> str | None:
    return blank_to_none(settings.telegram_group_id) or blank_to_none(settings.telegram_chat_id)


def channel_enabled(channel: str) -> bool:
    """Feature flag `channel_<name>_enabled` from features.yaml."""
    return bool(getattr(get_app_config().features, f"channel_{channel}_enabled", False))


def channel_ready(settings: ChatSettings, channel: str) -> bool:
    if not channel_enabled(channel):
        return False
    if channel == "messenger":
        return bool(settings.messenger_page_token.strip() and settings.messenger_recipient_id.strip())

    from eshop.backend.gateway.adapters.telegram import resolve_bot_token

    return bool(resolve_bot_token(settings.telegram_bot_token) and telegram_target(settings))


def channel_status(settings: ChatSettings, now: datetime | None = None) -> dict[str, Any]:
    return {
        "channel_type": settings.channel_type,
        "ready": channel_ready(settings, settings.channel_type),
        "online": is_online(settings, now),
    }


def build_channel_adapter(channel: str, settings: ChatSettings) -> ChannelAdapter:
    """
    Adapter for a configured channel.

    Raises:
        ConfigurationError: When the channel lacks credentials or a target
    """
    if not channel_enabled(channel):
        raise ConfigurationError(f"Kanál {channel} je vypnutý.")

    if channel == "email":
        from eshop.backend.gateway.adapters.mail import EmailAdapter

        if not settings.admin_email.strip():
            raise ConfigurationError("E-mail administrátora nie je nastavený.")
        return EmailAdapter(settings.admin_email.strip(), settings.email_subject_prefix)

    if not channel_ready(settings, channel):
        label = "Messenger" if channel == "messenger" else "Telegram"
        raise ConfigurationError(f"{label} nie je nakonfigurovaný.")

    if channel == "messenger":
        from eshop.backend.gateway.adapters.messenger import MessengerAdapter

        return MessengerAdapter(settings.messenger_page_token.strip(), settings.messenger_recipient_id.strip())

    from eshop.backend.gateway.adapters.telegram import TelegramAdapter, create_bot, resolve_bot_token

    return TelegramAdapter(create_bot(resolve_bot_token(settings.telegram_bot_token)), telegram_target(settings))


def _camel_keys(document: dict[str, Any]) -> dict[str, Any]:
    return {to_camel(key): value for key, value in document.items()}


async def _deliver(adapter: ChannelAdapter, message: RelayMessage) -> DeliveryResult:
    try:
        return await adapter.deliver(message)
    finally:
        await adapter.close()


class ChatService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.sessions = ChatSessionRepository(session)
        self.messages = ChatMessageRepository(session)
        self.store = ConfigStoreService(session)

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    async def get_settings(self) -> ChatSettings:
        return await self.store.read_model(CHAT_SETTINGS_KEY, ChatSettings)

    async def save_settings(self, changes: dict[str, Any]) -> ChatSettings:
        """Merge a partial document (camelCase or snake_case keys) over the current settings and store it."""
        current = (await self.get_settings()).model_dump(mode="json", by_alias=True)
        changes = _camel_keys(changes)
        if isinstance(changes.get("tawkTo"), dict):
            changes["tawkTo"] = {**current["tawkTo"], **_camel_keys(changes["tawkTo"])}
        try:
            settings = ChatSettings.model_validate({**current, **changes})
        except PydanticValidationError as e:
            fields = [".".join(map(str, err["loc"])) for err in e.errors()]
            raise ValidationError("Neplatné nastavenia chatu.", details={"fields": fields}) from e

        await self.store.write_model(CHAT_SETTINGS_KEY, settings)
        self._log_operation("Chat settings saved", channel_type=settings.channel_type)
        return settings

    async def widget_settings(self) -> dict[str, Any]:
        settings = await self.get_settings()
        status = channel_status(settings)
        return {"tawk_to": settings.tawk_to, "channel": status, "online": status["online"]}

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    async def _require_session(self, session_key: str) -> ChatSession:
        chat_session = await self.sessions.get_by_key(session_key.strip())
        if chat_session is None:
            raise NotFoundError(SESSION_MISSING)
        return chat_session

    def _apply_profile(self, chat_session: ChatSession, profile: VisitorProfile | None) -> bool:
        if profile is None:
            return False
        changed = False
        for field, attr in (("name", "visitor_name"), ("email", "visitor_email"), ("phone", "visitor_phone")):
            value = blank_to_none(getattr(profile, field))
            if value and value != getattr(chat_session, attr):
                setattr(chat_session, attr, value)
                changed = True
        return changed

    async def get_or_create_session(
        self,
        session_key: str | None = None,
        profile: VisitorProfile | None = None,
    ) -> ChatSession:
        key = blank_to_none(session_key) or str(uuid.uuid4())
        chat_session = await self.sessions.get_by_key(key)

        if chat_session is None:
            self._log_operation("Chat session started", session_key=key)
            chat_session = await self._execute_db_operation(
                "create_chat_session",
                self.sessions.create(session_key=key, status=SessionStatus.OPEN),
                conflict_message="Relácia už existuje",
            )

        if self._apply_profile(chat_session, profile):
            await self.session.flush()
        return chat_session

    async def update_profile(
        self,
        session_key: str,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> ChatSession:
        chat_session = await self._require_session(session_key)
        if self._apply_profile(chat_session, VisitorProfile(name=name, email=email, phone=phone)):
            await self.session.flush()
        return chat_session

    async def list_sessions(self, status: str | None = None) -> list[tuple[ChatSession, ChatMessage | None]]:
        """Sessions with their latest message for the preview column."""
        sessions = await self.sessions.list_sessions(blank_to_none(status))
        return [(item, await self.messages.latest_for_session(item.id)) for item in sessions]

    async def get_session_messages(self, session_key: str) -> tuple[ChatSession | None, list[ChatMessage]]:
        chat_session = await self.sessions.get_by_key(session_key.strip())
        if chat_session is None:
            return None, []
        return chat_session, await self.messages.list_for_session(chat_session.id)

    async def close_session(self, session_key: str) -> ChatSession:
        chat_session = await self._require_session(session_key)
        self._log_operation("Chat session closed", session_key=chat_session.session_key)
        return await self.sessions.update_instance(chat_session, status=SessionStatus.CLOSED)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    async def _store_message(
        self,
        chat_session: ChatSession,
        direction: MessageDirection,
        content: str,
        **extra: Any,
    ) -> ChatMessage:
        message = await self.messages.create(
            session_id=chat_session.id,
            direction=direction,
            content=content,
            **extra,
        )
        chat_session.last_message_at = message.created_at or utc_now()
        if chat_session.status == SessionStatus.CLOSED and direction == MessageDirection.VISITOR:
            chat_session.status = SessionStatus.OPEN
        await self.session.flush()
        return message

    async def _store_visitor_message(
        self,
        session_key: str | None,
        text: str,
        profile: VisitorProfile | None,
    ) -> tuple[ChatSession, ChatMessage]:
        content = (text or "").strip()
        if not content:
            raise ValidationError(EMPTY_MESSAGE)
        chat_session = await self.get_or_create_session(session_key, profile)
        message = await self._store_message(chat_session, MessageDirection.VISITOR, content)
        return chat_session, message

    def _relay_message(self, chat_session: ChatSession, text: str, subject: str | None = None) -> RelayMessage:
        return RelayMessage(
            session_key=chat_session.session_key,
            text=text,
            visitor_name=chat_session.visitor_name,
            visitor_email=chat_session.visitor_email,
            visitor_phone=chat_session.visitor_phone,
            subject=subject,
        )

    async def add_visitor_message(
        self,
        session_key: str | None,
        text: str,
        profile: VisitorProfile | None = None,
    ) -> tuple[ChatSession, ChatMessage, str | None]:
        """
        Store a widget message and notify the admin by email.

        Returns the session, the stored message and the auto-reply text
        (None when auto-reply is off).
        """
        chat_session, message = await self._store_visitor_message(session_key, text, profile)
        settings = await self.get_settings()

        if settings.admin_email.strip() and channel_enabled("email"):
            try:
                await _deliver(
                    build_channel_adapter("email", settings),
                    self._relay_message(chat_session, message.content),
                )
            except Exception as e:
                self._logger.warning(
                    "Chat email notification failed",
                    extra={"session_key": chat_session.session_key, "error": str(e)},
                )

        auto_reply = settings.auto_reply_message if settings.auto_reply_enabled else None
        return chat_session, message, auto_reply

    async def add_agent_message(
        self,
        session_key: str,
        content: str,
        telegram_message_id: int | None = None,
        telegram_update_id: int | None = None,
    ) -> ChatMessage:
        text = (content or "").strip()
        if not text:
            raise ValidationError(EMPTY_MESSAGE)
        chat_session = await self._require_session(session_key)
        self._log_operation(
            "Agent reply stored",
            session_key=chat_session.session_key,
            telegram_update_id=telegram_update_id,
        )
        return await self._store_message(
            chat_session,
            MessageDirection.AGENT,
            text,
            telegram_message_id=telegram_message_id,
            telegram_update_id=telegram_update_id,
        )

    # -------------------------------------------------------------------------
    # Channel dispatch
    # -------------------------------------------------------------------------

    async def relay_to_channel(
        self,
        channel: str,
        session_key: str | None,
        text: str,
        profile: VisitorProfile | None = None,
    ) -> tuple[ChatSession, ChatMessage, DeliveryResult]:
        """
        Store a visitor message and forward it to Telegram or Messenger.

        Raises:
            ValidationError: Empty message
            ConfigurationError: Channel not set up
            ExternalServiceError: Channel rejected the message
        """
        if not (text or "").strip():
            raise ValidationError(EMPTY_MESSAGE)

        settings = await self.get_settings()
        adapter = build_channel_adapter(channel, settings)
        try:
            chat_session, message = await self._store_visitor_message(session_key, text, profile)
            result = await adapter.deliver(self._relay_message(chat_session, message.content))
        finally:
            await adapter.close()

        message.external_message_id = result.external_message_id
        if channel == "telegram" and result.external_message_id:
            message.telegram_message_id = int(result.external_message_id)
        await self.session.flush()
        self._log_operation(
            "Visitor message relayed",
            channel=channel,
            session_key=chat_session.session_key,
            external_message_id=result.external_message_id,
        )
        return chat_session, message, result

    async def send_offline_email(
        self,
        session_key: str | None,
        text: str,
        profile: VisitorProfile | None = None,
    ) -> tuple[ChatSession, ChatMessage, DeliveryResult]:
        """Offline form: store the message and email it to the admin."""
        if not (text or "").strip():
            raise ValidationError(EMPTY_MESSAGE)

        settings = await self.get_settings()
        adapter = build_channel_adapter("email", settings)
        try:
            chat_session, message = await self._store_visitor_message(session_key, text, profile)
            result = await adapter.deliver(self._relay_message(chat_session, message.content))
        finally:
            await adapter.close()
        return chat_session, message, result
