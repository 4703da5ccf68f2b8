from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from careline.db.session import get_db_session
from careline.features.shared.auth import get_current_user_id
from careline.features.shared.ids import parse_uuid
from careline.features.users import UserCache
from careline.features.users.api import get_user_cache

from .errors import (
    AggregationUnavailableError,
    MessagingValidationError,
    ParticipantNotFoundError,
)
from .service import (
    leave_conversation,
    list_messages,
    mark_conversation_read,
    send_message,
    unread_count_for,
    unread_counts_by_conversation,
)
from .types import (
    ConversationUnreadItem,
    ConversationUnreadListResponse,
    LeaveConversationResponse,
    MarkReadResponse,
    MessagePageResponse,
    MessageResponse,
    SendMessageInput,
    UnreadCountResponse,
)

router = APIRouter(prefix="/api", tags=["messages"])


def _raise_http_error(exc: Exception) -> None:
    if isinstance(exc, ParticipantNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, MessagingValidationError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, AggregationUnavailableError):
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    raise exc


@router.get("/messages/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> UnreadCountResponse:
    try:
        count = await unread_count_for(session, user_id)
    except Exception as exc:
        _raise_http_error(exc)
    return UnreadCountResponse(count=count)


@router.get("/conversations/unread", response_model=ConversationUnreadListResponse)
async def get_conversation_unread_counts(
    conversation_ids: list[str] | None = Query(default=None),
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> ConversationUnreadListResponse:
    scoped_ids = None
    if conversation_ids is not None:
        scoped_ids = [parse_uuid(item, field_name="conversation id") for item in conversation_ids]
    try:
        counts = await unread_counts_by_conversation(
            session,
            user_id,
            conversation_ids=scoped_ids,
        )
    except Exception as exc:
        _raise_http_error(exc)
    items = [
        ConversationUnreadItem(
            conversation_id=str(item.conversation_id),
            unread_count=item.unread_count,
        )
        for item in counts
    ]
    return ConversationUnreadListResponse(
        items=items,
        total=sum(item.unread_count for item in items),
    )


@router.post("/conversations/{conversation_id}/read", response_model=MarkReadResponse)
async def post_conversation_read(
    conversation_id: str,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> MarkReadResponse:
    conversation_uuid = parse_uuid(conversation_id, field_name="conversation id")
    try:
        read_at = await mark_conversation_read(
            session,
            conversation_id=conversation_uuid,
            user_id=user_id,
        )
    except Exception as exc:
        _raise_http_error(exc)
    return MarkReadResponse(success=True, last_read_at=read_at)


@router.get("/conversations/{conversation_id}/messages", response_model=MessagePageResponse)
async def get_conversation_messages(
    conversation_id: str,
    cursor: datetime | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=100),
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    cache: UserCache = Depends(get_user_cache),
) -> MessagePageResponse:
    conversation_uuid = parse_uuid(conversation_id, field_name="conversation id")
    try:
        return await list_messages(
            session,
            conversation_id=conversation_uuid,
            user_id=user_id,
            cache=cache,
            cursor=cursor,
            limit=limit,
        )
    except Exception as exc:
        _raise_http_error(exc)


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=201,
)
async def post_conversation_message(
    conversation_id: str,
    payload: SendMessageInput,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    cache: UserCache = Depends(get_user_cache),
) -> MessageResponse:
    conversation_uuid = parse_uuid(conversation_id, field_name="conversation id")
    try:
        return await send_message(
            session,
            conversation_id=conversation_uuid,
            sender_id=user_id,
            content=payload.content,
            message_type=payload.message_type,
            cache=cache,
        )
    except Exception as exc:
        _raise_http_error(exc)


@router.post("/conversations/{conversation_id}/leave", response_model=LeaveConversationResponse)
async def post_conversation_leave(
    conversation_id: str,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> LeaveConversationResponse:
    conversation_uuid = parse_uuid(conversation_id, field_name="conversation id")
    try:
        left_at = await leave_conversation(
            session,
            conversation_id=conversation_uuid,
            user_id=user_id,
        )
    except Exception as exc:
        _raise_http_error(exc)
    return LeaveConversationResponse(success=True, left_at=left_at)
