"""
Unit Tests for the Telegram reply poller.
"""

import asyncio

import pytest

from eshop.backend.core.config import get_app_config
from eshop.backend.core.exceptions import ExternalServiceError
from eshop.backend.models.chat import MessageDirection
from eshop.backend.services.chat import ChatService
from eshop.backend.services.config_store import TELEGRAM_OFFSET_KEY, ConfigStoreService
from eshop.backend.services.telegram_poll import (
    MatchedReply,
    TelegramPoller,
    allowed_chat_ids,
    extract_session_key,
    match_reply,
)


@pytest.fixture
async def open_session(db_session):
    service = ChatService(db_session)
    await service.save_settings({"telegramGroupId": "-100500"})
    await service.add_visitor_message("abc-123", "Dobrý deň")
    return service


class TestMatching:
    def test_extract_session_key(self):
        assert extract_session_key("[CS:abc-123] Nová správa") == "abc-123"
        assert extract_session_key("[cs: abc ] x") == "abc"
        assert extract_session_key("bez tagu") is None
        assert extract_session_key(None) is None

    def test_reply_to_relayed_message(self, make_message):
        relayed = make_message("[CS:abc-123] Nová správa z e-shop chatu")
        assert match_reply(make_message(" Dobrý deň, áno. ", reply_to=relayed)) == MatchedReply(
            "abc-123", "Dobrý deň, áno."
        )

    @pytest.mark.parametrize(
        "text",
        ["/reply abc-123 Posielame ponuku", "/odpoved abc-123 Posielame ponuku", "/REPLY abc-123   Posielame ponuku"],
    )
    def test_reply_command(self, make_message, text):
        assert match_reply(make_message(text)) == MatchedReply("abc-123", "Posielame ponuku")

    def test_inline_tag(self, make_message):
        assert match_reply(make_message("[CS:abc-123] Volajte 0900")) == MatchedReply("abc-123", "Volajte 0900")

    def test_tag_without_text(self, make_message):
        assert match_reply(make_message("[CS:abc-123]")) is None

    def test_unrelated_message(self, make_message):
        assert match_reply(make_message("Kto ide na obed?")) is None
        assert match_reply(make_message(None)) is None

    def test_reply_to_untagged_message_falls_through(self, make_message):
        message = make_message("/reply abc-123 Ok", reply_to=make_message("iná správa"))
        assert match_reply(message) == MatchedReply("abc-123", "Ok")

    def test_allowed_chat_ids(self):
        assert allowed_chat_ids(" -100500 ", "") == {"-100500"}
        assert allowed_chat_ids("-1", "2") == {"-1", "2"}
        assert allowed_chat_ids("", " ") == set()


class TestPollOnce:
    async def test_stores_agent_reply(self, db_session, open_session, fake_bot, make_message, make_update):
        fake_bot.get_updates.return_value = [make_update(10, make_message("/reply abc-123 Máme skladom", message_id=5))]

        result = await TelegramPoller(db_session, bot=fake_bot).poll_once()

        assert result == {"processed": 1, "next_offset": 11}
        _, messages = await open_session.get_session_messages("abc-123")
        assert messages[-1].direction == MessageDirection.AGENT
        assert messages[-1].content == "Máme skladom"
        assert messages[-1].telegram_update_id == 10
        assert await ConfigStoreService(db_session).read(TELEGRAM_OFFSET_KEY, 0) == 11

    async def test_offset_sent_on_next_pass(self, db_session, open_session, fake_bot, make_message, make_update):
        poller = TelegramPoller(db_session, bot=fake_bot)
        fake_bot.get_updates.return_value = [make_update(41, make_message("nič"))]
        await poller.poll_once()

        fake_bot.get_updates.return_value = []
        result = await poller.poll_once()

        assert "offset" not in fake_bot.get_updates.await_args_list[0].kwargs
        assert fake_bot.get_updates.await_args_list[1].kwargs["offset"] == 42
        assert fake_bot.get_updates.await_args_list[1].kwargs["allowed_updates"] == ["message"]
        assert result == {"processed": 0, "next_offset": 42}

    async def test_long_poll_timeout_reaches_get_updates(self, db_session, open_session, fake_bot):
        await TelegramPoller(db_session, bot=fake_bot).poll_once()

        kwargs = fake_bot.get_updates.await_args.kwargs
        assert kwargs["timeout"] == get_app_config().channels.telegram.poll_timeout_seconds
        assert kwargs["allowed_updates"] == ["message"]

    async def test_stalled_get_updates(self, db_session, open_session, fake_bot, override_config):
        telegram = override_config("channels").telegram.model_copy(
            update={"request_timeout_seconds": 0.05, "poll_timeout_seconds": 0}
        )
        override_config("channels", telegram=telegram)

        async def stall(**kwargs):
            await asyncio.sleep(1)

        fake_bot.get_updates.side_effect = stall

        with pytest.raises(ExternalServiceError, match="telegram"):
            await TelegramPoller(db_session, bot=fake_bot).poll_once()
        assert await ConfigStoreService(db_session).read(TELEGRAM_OFFSET_KEY, 0) == 0

    async def test_same_update_is_stored_once(self, db_session, open_session, fake_bot, make_message, make_update):
        update = make_update(10, make_message("[CS:abc-123] Odpoveď"))
        fake_bot.get_updates.return_value = [update]
        poller = TelegramPoller(db_session, bot=fake_bot)

        await poller.poll_once()
        await ConfigStoreService(db_session).write(TELEGRAM_OFFSET_KEY, 0)
        second = await poller.poll_once()

        assert second["processed"] == 0
        _, messages = await open_session.get_session_messages("abc-123")
        assert [m.content for m in messages] == ["Dobrý deň", "Odpoveď"]

    async def test_ignores_other_chats(self, db_session, open_session, fake_bot, make_message, make_update):
        fake_bot.get_updates.return_value = [make_update(3, make_message("[CS:abc-123] Spam", chat_id=999))]

        result = await TelegramPoller(db_session, bot=fake_bot).poll_once()

        assert result == {"processed": 0, "next_offset": 4}

    async def test_unknown_session_is_skipped(self, db_session, open_session, fake_bot, make_message, make_update):
        fake_bot.get_updates.return_value = [make_update(3, make_message("[CS:missing] Haló"))]
        assert (await TelegramPoller(db_session, bot=fake_bot).poll_once())["processed"] == 0

    async def test_no_target_chat_configured(self, db_session, fake_bot):
        result = await TelegramPoller(db_session, bot=fake_bot).poll_once()

        assert result == {"processed": 0, "next_offset": 0}
        fake_bot.get_updates.assert_not_awaited()

    async def test_no_token_and_no_bot(self, db_session, open_session):
        assert await TelegramPoller(db_session).poll_once() == {"processed": 0, "next_offset": 0}

    async def test_channel_disabled(self, db_session, open_session, fake_bot, override_config):
        override_config("features", channel_telegram_enabled=False)

        await TelegramPoller(db_session, bot=fake_bot).poll_once()

        fake_bot.get_updates.assert_not_awaited()
