"""
Unit Tests for Chat Service.

Online-hours logic and channel readiness are pure; the message flow runs
against the in-memory database with a fake Telegram bot.
"""

from datetime import datetime, timezone

import pytest

from eshop.backend.core.exceptions import (
    ConfigurationError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from eshop.backend.gateway.adapters.mail import EmailAdapter
from eshop.backend.gateway.adapters.messenger import MessengerAdapter
from eshop.backend.gateway.adapters.telegram import TelegramAdapter
from eshop.backend.models.chat import MessageDirection, SessionStatus
from eshop.backend.schemas.chat import VisitorProfile
from eshop.backend.schemas.settings import ChatScheduleEntry, ChatSettings
from eshop.backend.services.chat import (
    ChatService,
    build_channel_adapter,
    channel_ready,
    channel_status,
    is_online,
    telegram_target,
)

TELEGRAM_READY = {
    "channelType": "telegram",
    "telegramBotToken": "123:abc",
    "telegramGroupId": "-100500",
}


@pytest.fixture
def patched_bot(monkeypatch, fake_bot):
    """Every Telegram adapter built by the chat service talks to fake_bot."""
    monkeypatch.setattr("eshop.backend.gateway.adapters.telegram.create_bot", lambda token: fake_bot)
    return fake_bot


class TestIsOnline:
    # 2025-03-10 is a Monday; Bratislava is UTC+1 in March
    def test_inside_weekday_hours(self):
        assert is_online(ChatSettings(), datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc))

    def test_end_is_exclusive(self):
        assert not is_online(ChatSettings(), datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc))

    def test_naive_values_are_utc(self):
        assert is_online(ChatSettings(), datetime(2025, 3, 10, 6, 59)) is False
        assert is_online(ChatSettings(), datetime(2025, 3, 10, 7, 0)) is True

    def test_friday_closes_earlier(self):
        friday = datetime(2025, 3, 14, 14, 30, tzinfo=timezone.utc)
        assert not is_online(ChatSettings(), friday)

    def test_sunday_is_day_zero(self):
        settings = ChatSettings(online_hours=[ChatScheduleEntry(day=0, start="10:00", end="12:00")])
        assert is_online(settings, datetime(2025, 3, 16, 10, 30, tzinfo=timezone.utc))

    def test_always_online(self):
        sunday_night = datetime(2025, 3, 16, 23, 0, tzinfo=timezone.utc)
        assert is_online(ChatSettings(always_online=True), sunday_night)

    def test_unknown_timezone_falls_back(self):
        settings = ChatSettings(timezone="Mars/Olympus")
        assert is_online(settings, datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc))


class TestChannelReadiness:
    def test_telegram_needs_token_and_target(self):
        assert not channel_ready(ChatSettings(), "telegram")
        assert channel_ready(ChatSettings.model_validate(TELEGRAM_READY), "telegram")

    def test_telegram_token_from_environment(self, monkeypatch):
        from eshop.backend.core.config import get_settings

        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "999:env")
        get_settings.cache_clear()
        assert channel_ready(ChatSettings(telegram_chat_id="42"), "telegram")

    def test_group_id_preferred_over_chat_id(self):
        assert telegram_target(ChatSettings(telegram_group_id="-1", telegram_chat_id="2")) == "-1"
        assert telegram_target(ChatSettings(telegram_chat_id=" 2 ")) == "2"

    def test_messenger_needs_token_and_recipient(self):
        assert not channel_ready(ChatSettings(messenger_page_token="tok"), "messenger")
        assert channel_ready(
            ChatSettings(messenger_page_token="tok", messenger_recipient_id="rcp"),
            "messenger",
        )

    def test_feature_flag_disables_channel(self, override_config):
        override_config("features", channel_telegram_enabled=False)
        assert not channel_ready(ChatSettings.model_validate(TELEGRAM_READY), "telegram")

    def test_status_shape(self):
        status = channel_status(ChatSettings(always_online=True))
        assert status == {"channel_type": "telegram", "ready": False, "online": True}

    def test_unknown_channel_type_becomes_telegram(self):
        assert ChatSettings(channel_type="sms").channel_type == "telegram"


class TestBuildChannelAdapter:
    def test_email_requires_admin_address(self):
        with pytest.raises(ConfigurationError):
            build_channel_adapter("email", ChatSettings())

    def test_email_adapter(self):
        assert isinstance(build_channel_adapter("email", ChatSettings(admin_email="a@2pnet.cz")), EmailAdapter)

    def test_messenger_not_configured(self):
        with pytest.raises(ConfigurationError, match="Messenger"):
            build_channel_adapter("messenger", ChatSettings())

    def test_messenger_adapter(self):
        settings = ChatSettings(messenger_page_token="tok", messenger_recipient_id="rcp")
        assert isinstance(build_channel_adapter("messenger", settings), MessengerAdapter)

    def test_telegram_adapter(self, patched_bot):
        adapter = build_channel_adapter("telegram", ChatSettings.model_validate(TELEGRAM_READY))
        assert isinstance(adapter, TelegramAdapter)

    def test_disabled_channel(self, override_config):
        override_config("features", channel_email_enabled=False)
        with pytest.raises(ConfigurationError, match="vypnutý"):
            build_channel_adapter("email", ChatSettings(admin_email="a@2pnet.cz"))


class TestSettings:
    async def test_defaults_are_created(self, db_session):
        settings = await ChatService(db_session).get_settings()
        assert settings.timezone == "Europe/Bratislava"
        assert len(settings.online_hours) == 5

    async def test_save_merges_partial_document(self, db_session):
        service = ChatService(db_session)
        await service.save_settings({"adminEmail": "podpora@2pnet.cz", "tawkTo": {"enabled": True}})
        await service.save_settings({"tawk_to": {"property_id": "prop-1"}, "auto_reply_enabled": True})

        settings = await service.get_settings()
        assert settings.admin_email == "podpora@2pnet.cz"
        assert settings.auto_reply_enabled is True
        assert settings.tawk_to.enabled is True
        assert settings.tawk_to.property_id == "prop-1"

    async def test_save_rejects_bad_schedule(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await ChatService(db_session).save_settings({"onlineHours": [{"day": 9, "start": "8", "end": "16:00"}]})
        assert "onlineHours.0.day" in exc_info.value.details["fields"]

    async def test_widget_settings_hide_credentials(self, db_session):
        service = ChatService(db_session)
        await service.save_settings(TELEGRAM_READY)

        widget = await service.widget_settings()

        assert set(widget) == {"tawk_to", "channel", "online"}
        assert widget["channel"]["ready"] is True


class TestVisitorMessages:
    async def test_new_session_and_profile(self, db_session):
        service = ChatService(db_session)
        chat_session, message, auto_reply = await service.add_visitor_message(
            None,
            "  Dobrý deň, máte UPS skladom? ",
            VisitorProfile(name="Ján", email="jan@firma.sk"),
        )

        assert chat_session.session_key
        assert chat_session.visitor_name == "Ján"
        assert chat_session.last_message_at is not None
        assert message.content == "Dobrý deň, máte UPS skladom?"
        assert message.direction == MessageDirection.VISITOR
        assert auto_reply is None

    async def test_auto_reply_text(self, db_session):
        service = ChatService(db_session)
        await service.save_settings({"autoReplyEnabled": True, "autoReplyMessage": "Hneď sme tu."})

        _, _, auto_reply = await service.add_visitor_message("key-1", "Ahoj")
        assert auto_reply == "Hneď sme tu."

    async def test_empty_message_rejected(self, db_session):
        with pytest.raises(ValidationError):
            await ChatService(db_session).add_visitor_message("key-1", "   ")

    async def test_visitor_message_reopens_closed_session(self, db_session):
        service = ChatService(db_session)
        await service.add_visitor_message("key-2", "Prvá")
        await service.close_session("key-2")

        chat_session, _, _ = await service.add_visitor_message("key-2", "Ešte jedna otázka")
        assert chat_session.status == SessionStatus.OPEN

    async def test_admin_email_failure_does_not_block(self, db_session, monkeypatch):
        service = ChatService(db_session)
        await service.save_settings({"adminEmail": "podpora@2pnet.cz"})

        async def broken(self, message):
            raise ConnectionError("smtp down")

        monkeypatch.setattr(EmailAdapter, "deliver", broken)
        _, message, _ = await service.add_visitor_message("key-3", "Haló")
        assert message.id


class TestAgentMessagesAndSessions:
    async def test_agent_reply(self, db_session):
        service = ChatService(db_session)
        await service.add_visitor_message("key-4", "Otázka")

        reply = await service.add_agent_message("key-4", "Odpoveď", telegram_update_id=10)
        _, messages = await service.get_session_messages("key-4")

        assert reply.direction == MessageDirection.AGENT
        assert [m.direction for m in messages] == [MessageDirection.VISITOR, MessageDirection.AGENT]

    async def test_agent_reply_unknown_session(self, db_session):
        with pytest.raises(NotFoundError):
            await ChatService(db_session).add_agent_message("missing", "Odpoveď")

    async def test_unknown_session_messages_are_empty(self, db_session):
        assert await ChatService(db_session).get_session_messages("missing") == (None, [])

    async def test_list_sessions_with_latest_message(self, db_session):
        service = ChatService(db_session)
        await service.add_visitor_message("key-5", "Prvá")
        await service.add_agent_message("key-5", "Posledná")
        await service.add_visitor_message("key-6", "Iná relácia")
        await service.close_session("key-6")

        open_sessions = await service.list_sessions("open")
        assert [(s.session_key, latest.content) for s, latest in open_sessions] == [("key-5", "Posledná")]
        assert len(await service.list_sessions()) == 2


class TestRelayToChannel:
    async def test_relay_to_telegram(self, db_session, patched_bot):
        service = ChatService(db_session)
        await service.save_settings(TELEGRAM_READY)

        chat_session, message, result = await service.relay_to_channel(
            "telegram", "key-7", "Potrebujem servis", VisitorProfile(name="Eva", phone="+421900")
        )

        assert result.external_message_id == "777"
        assert message.telegram_message_id == 777
        sent = patched_bot.send_message.await_args.kwargs
        assert sent["chat_id"] == "-100500"
        assert sent["text"].startswith("[CS:key-7] Nová správa z e-shop chatu")
        assert "Telefón: +421900" in sent["text"]
        patched_bot.session.close.assert_awaited_once()

    async def test_bot_closed_when_storing_fails(self, db_session, patched_bot, monkeypatch):
        service = ChatService(db_session)
        await service.save_settings(TELEGRAM_READY)

        async def broken_store(*args, **kwargs):
            raise DatabaseError("Database operation failed: create_chat_message")

        monkeypatch.setattr(service, "_store_visitor_message", broken_store)

        with pytest.raises(DatabaseError):
            await service.relay_to_channel("telegram", "key-7", "Potrebujem servis")

        patched_bot.send_message.assert_not_awaited()
        patched_bot.session.close.assert_awaited_once()

    async def test_relay_requires_configured_channel(self, db_session):
        service = ChatService(db_session)
        with pytest.raises(ConfigurationError):
            await service.relay_to_channel("telegram", "key-8", "Ahoj")
        assert await service.get_session_messages("key-8") == (None, [])

    async def test_offline_email_needs_admin_email(self, db_session):
        with pytest.raises(ConfigurationError):
            await ChatService(db_session).send_offline_email("key-9", "Zavolajte mi")

    async def test_offline_email_simulated(self, db_session):
        service = ChatService(db_session)
        await service.save_settings({"adminEmail": "podpora@2pnet.cz"})

        _, message, result = await service.send_offline_email("key-9", "Zavolajte mi")

        assert result.channel == "email"
        assert message.content == "Zavolajte mi"
