"""
Chat Repositories.
"""

from sqlalchemy import select

from eshop.backend.models.chat import ChatMessage, ChatSession
from eshop.backend.repositories.base import BaseRepository


class ChatSessionRepository(BaseRepository[ChatSession]):
    model = ChatSession
    not_found_message = "Relácia neexistuje"

    async def get_by_key(self, session_key: str) -> ChatSession | None:
        result = await self.session.execute(
            select(ChatSession).where(ChatSession.session_key == session_key)
        )
        return result.scalar_one_or_none()

    async def list_sessions(self, status: str | None = None) -> list[ChatSession]:
        """Most recently active first; sessions without messages last."""
        stmt = select(ChatSession)
        if status:
            stmt = stmt.where(ChatSession.status == status)
        stmt = stmt.order_by(
            ChatSession.last_message_at.desc().nulls_last(),
            ChatSession.created_at.desc(),
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class ChatMessageRepository(BaseRepository[ChatMessage]):
    model = ChatMessage

    async def list_for_session(self, session_id: str) -> list[ChatMessage]:
        result = await self.session.execute(
            select(ChatMessage)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.asc())
        )
        return list(result.scalars().all())

    async def latest_for_session(self, session_id: str) -> ChatMessage | None:
        result = await self.session.execute(
            select(ChatMessage)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def exists_for_update(self, telegram_update_id: int) -> bool:
        """True when a Telegram update was already stored as a message."""
        result = await self.session.execute(
            select(ChatMessage.id).where(ChatMessage.telegram_update_id == telegram_update_id)
        )
        return result.scalars().first() is not None
