"""
Chat Schemas.
"""

from datetime import datetime

from pydantic import Field

from eshop.backend.schemas.base import CamelModel
from eshop.backend.schemas.settings import TawkToSettings


class VisitorProfile(CamelModel):
    name: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)


class VisitorMessageRequest(VisitorProfile):
    """Message typed into the storefront widget. A missing key starts a new session."""

    session_key: str | None = Field(default=None, max_length=100)
    message: str = ""


class AgentReplyRequest(CamelModel):
    session_key: str = ""
    message: str = ""


class ChatMessageResponse(CamelModel):
    id: str
    direction: str
    content: str
    telegram_message_id: int | None = None
    external_message_id: str | None = None
    created_at: datetime


class ChatSessionResponse(CamelModel):
    id: str
    session_key: str
    visitor_name: str | None = None
    visitor_email: str | None = None
    visitor_phone: str | None = None
    status: str
    last_message_at: datetime | None = None
    created_at: datetime


class ChatSessionSummary(ChatSessionResponse):
    last_message: ChatMessageResponse | None = None


class SessionMessages(CamelModel):
    session: ChatSessionResponse | None = None
    messages: list[ChatMessageResponse] = Field(default_factory=list)


class VisitorMessageResult(CamelModel):
    session_key: str
    message: ChatMessageResponse
    auto_reply: str | None = None


class ChannelDispatchResult(CamelModel):
    session_key: str
    channel: str
    message: ChatMessageResponse
    external_message_id: str | None = None


class ChannelStatus(CamelModel):
    channel_type: str
    ready: bool
    online: bool


class WidgetSettings(CamelModel):
    """Public widget configuration. Carries no channel credentials."""

    tawk_to: TawkToSettings
    channel: ChannelStatus
    online: bool


class TelegramPollResult(CamelModel):
    processed: int
    next_offset: int
