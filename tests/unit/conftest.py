"""
Unit Test Fixtures.

Fixtures for unit tests. External services (Telegram, Messenger, FlexiBee,
SMTP) are always faked. Services that need persistence use the in-memory
database from the root conftest.
"""

from collections.abc import Callable
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

# =============================================================================
# Database Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """
    Mock database session for unit tests.

    Usage:
        def test_service(mock_db_session: AsyncMock):
            service = OrderService(mock_db_session)
    """
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    return session


# =============================================================================
# HTTP Fixtures
# =============================================================================


@pytest.fixture
def http_recorder() -> Callable[..., tuple[httpx.AsyncClient, list[httpx.Request]]]:
    """
    Build an httpx client backed by MockTransport that records every request.

    Usage:
        client, requests = http_recorder(lambda request: httpx.Response(200, json={}))
    """

    def build(handler: Callable[[httpx.Request], httpx.Response]) -> tuple[httpx.AsyncClient, list[httpx.Request]]:
        requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(record)), requests

    return build


# =============================================================================
# Telegram Fakes
# =============================================================================


def _message(
    text: str | None,
    chat_id: int | str = -100500,
    message_id: int = 1,
    reply_to: Any = None,
) -> SimpleNamespace:
    """Object shaped like an aiogram Message for the attributes the poller reads."""
    return SimpleNamespace(
        text=text,
        caption=None,
        chat=SimpleNamespace(id=chat_id),
        message_id=message_id,
        reply_to_message=reply_to,
    )


def _update(update_id: int, message: Any) -> SimpleNamespace:
    return SimpleNamespace(update_id=update_id, message=message)


@pytest.fixture
def make_message() -> Callable[..., SimpleNamespace]:
    """Factory for Telegram message doubles: make_message("text", reply_to=...)."""
    return _message


@pytest.fixture
def make_update() -> Callable[[int, Any], SimpleNamespace]:
    return _update


@pytest.fixture
def fake_bot() -> MagicMock:
    """
    Bot double with async get_updates and send_message.

    Usage:
        fake_bot.get_updates.return_value = [make_update(10, make_message("hi"))]
    """
    bot = MagicMock()
    bot.get_updates = AsyncMock(return_value=[])
    bot.send_message = AsyncMock(return_value=SimpleNamespace(message_id=777))
    bot.session = MagicMock()
    bot.session.close = AsyncMock()
    return bot


# =============================================================================
# Logging Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_logger() -> MagicMock:
    """
    Mock logger for testing logging calls.

    Usage:
        def test_logging(mock_logger):
            with patch("module.logger", mock_logger):
                ...
                mock_logger.info.assert_called_once()
    """
    logger = MagicMock()
    logger.debug = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    return logger
