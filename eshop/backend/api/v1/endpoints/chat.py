"""
Chat API Endpoints.

Public widget endpoints (visitor messages, channel relays, widget settings)
and the admin inbox.
"""

from typing import Any

from fastapi import APIRouter, Body, Query

from eshop.backend.core.dependencies import AdminUser, DbSession, RequestId
from eshop.backend.core.exceptions import ValidationError
from eshop.backend.models.chat import ChatMessage, ChatSession
from eshop.backend.schemas.base import ApiResponse, ResponseMetadata
from eshop.backend.schemas.chat import (
    AgentReplyRequest,
    ChannelDispatchResult,
    ChatMessageResponse,
    ChatSessionResponse,
    ChatSessionSummary,
    SessionMessages,
    TelegramPollResult,
    VisitorMessageRequest,
    VisitorMessageResult,
    VisitorProfile,
    WidgetSettings,
)
from eshop.backend.schemas.settings import ChatSettings
from eshop.backend.services.chat import ChatService
from eshop.backend.services.telegram_poll import TelegramPoller

router = APIRouter()


def _profile(data: VisitorMessageRequest) -> VisitorProfile:
    return VisitorProfile(name=data.name, email=data.email, phone=data.phone)


def _dispatch_result(
    channel: str,
    chat_session: ChatSession,
    message: ChatMessage,
    external_message_id: str | None,
) -> ChannelDispatchResult:
    return ChannelDispatchResult(
        session_key=chat_session.session_key,
        channel=channel,
        message=ChatMessageResponse.model_validate(message),
        external_message_id=external_message_id,
    )


# =============================================================================
# Public
# =============================================================================


@router.post(
    "/messages",
    response_model=ApiResponse[VisitorMessageResult],
    summary="Send a visitor message",
    description="Stores the message, starting a session when no key is given.",
)
async def post_visitor_message(
    data: VisitorMessageRequest,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[VisitorMessageResult]:
    chat_session, message, auto_reply = await ChatService(db).add_visitor_message(
        data.session_key, data.message, _profile(data)
    )
    result = VisitorMessageResult(
        session_key=chat_session.session_key,
        message=ChatMessageResponse.model_validate(message),
        auto_reply=auto_reply,
    )
    return ApiResponse(data=result, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/session/{session_key}/messages",
    response_model=ApiResponse[SessionMessages],
    summary="Messages of a session",
    description="Unknown keys return an empty list and no session.",
)
async def get_session_messages(
    session_key: str,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[SessionMessages]:
    chat_session, messages = await ChatService(db).get_session_messages(session_key)
    body = SessionMessages(
        session=ChatSessionResponse.model_validate(chat_session) if chat_session else None,
        messages=[ChatMessageResponse.model_validate(message) for message in messages],
    )
    return ApiResponse(data=body, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/widget",
    response_model=ApiResponse[WidgetSettings],
    summary="Public widget settings",
)
async def get_widget_settings(
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[WidgetSettings]:
    widget = await ChatService(db).widget_settings()
    return ApiResponse(data=WidgetSettings.model_validate(widget), metadata=ResponseMetadata(request_id=request_id))


async def _relay(channel: str, data: VisitorMessageRequest, db: DbSession) -> ChannelDispatchResult:
    chat_session, message, result = await ChatService(db).relay_to_channel(
        channel, data.session_key, data.message, _profile(data)
    )
    return _dispatch_result(channel, chat_session, message, result.external_message_id)


@router.post(
    "/send-telegram",
    response_model=ApiResponse[ChannelDispatchResult],
    summary="Relay a visitor message to Telegram",
)
async def send_telegram(
    data: VisitorMessageRequest,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[ChannelDispatchResult]:
    result = await _relay("telegram", data, db)
    return ApiResponse(data=result, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/send-messenger",
    response_model=ApiResponse[ChannelDispatchResult],
    summary="Relay a visitor message to Messenger",
)
async def send_messenger(
    data: VisitorMessageRequest,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[ChannelDispatchResult]:
    result = await _relay("messenger", data, db)
    return ApiResponse(data=result, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/send-email",
    response_model=ApiResponse[ChannelDispatchResult],
    summary="Offline message by email",
)
async def send_email(
    data: VisitorMessageRequest,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[ChannelDispatchResult]:
    chat_session, message, result = await ChatService(db).send_offline_email(
        data.session_key, data.message, _profile(data)
    )
    return ApiResponse(
        data=_dispatch_result("email", chat_session, message, result.external_message_id),
        metadata=ResponseMetadata(request_id=request_id),
    )


# =============================================================================
# Admin
# =============================================================================


@router.get(
    "/admin/sessions",
    response_model=ApiResponse[list[ChatSessionSummary]],
    summary="List chat sessions",
    description="Most recent activity first, with the latest message.",
)
async def list_sessions(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
    status: str | None = Query(default=None, pattern="^(open|closed)$"),
) -> ApiResponse[list[ChatSessionSummary]]:
    rows = await ChatService(db).list_sessions(status)
    summaries = [
        ChatSessionSummary.model_validate(chat_session).model_copy(
            update={"last_message": ChatMessageResponse.model_validate(latest) if latest else None}
        )
        for chat_session, latest in rows
    ]
    return ApiResponse(data=summaries, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/admin/reply",
    response_model=ApiResponse[ChatMessageResponse],
    summary="Reply as staff",
)
async def admin_reply(
    data: AgentReplyRequest,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[ChatMessageResponse]:
    if not data.session_key.strip() or not data.message.strip():
        raise ValidationError("Chýba relácia alebo správa.")
    message = await ChatService(db).add_agent_message(data.session_key, data.message)
    return ApiResponse(data=ChatMessageResponse.model_validate(message), metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/admin/sessions/{session_key}/close",
    response_model=ApiResponse[ChatSessionResponse],
    summary="Close a chat session",
)
async def close_session(
    session_key: str,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[ChatSessionResponse]:
    chat_session = await ChatService(db).close_session(session_key)
    return ApiResponse(data=ChatSessionResponse.model_validate(chat_session), metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/settings",
    response_model=ApiResponse[ChatSettings],
    summary="Chat settings",
)
async def get_chat_settings(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[ChatSettings]:
    settings = await ChatService(db).get_settings()
    return ApiResponse(data=settings, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/settings",
    response_model=ApiResponse[ChatSettings],
    summary="Update chat settings",
    description="Keys present in the body replace the stored ones; the rest are kept.",
)
async def save_chat_settings(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
    changes: dict[str, Any] = Body(...),
) -> ApiResponse[ChatSettings]:
    settings = await ChatService(db).save_settings(changes)
    return ApiResponse(data=settings, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/telegram/poll",
    response_model=ApiResponse[TelegramPollResult],
    summary="Run one Telegram poll pass",
)
async def poll_telegram(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[TelegramPollResult]:
    result = await TelegramPoller(db).poll_once()
    return ApiResponse(data=TelegramPollResult(**result), metadata=ResponseMetadata(request_id=request_id))
