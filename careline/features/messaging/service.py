from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from careline.core.config import get_settings
from careline.db.models import Message
from careline.features.notifications import stage_notifications
from careline.features.shared.ids import to_uuid
from careline.features.users import (
    CachedUser,
    UserCache,
    UserNotFoundError,
    get_user,
    resolve_users,
    to_user_response,
)

from . import repo
from .errors import (
    AggregationUnavailableError,
    MessagingValidationError,
    ParticipantNotFoundError,
)
from .types import ConversationUnreadCount, MessagePageResponse, MessageResponse

_DEFAULT_PAGE_SIZE = 50
_MAX_PAGE_SIZE = 100
_NOTIFICATION_PREVIEW_LENGTH = 100
logger = logging.getLogger(__name__)


async def _preferred_unread_count(session: AsyncSession, user_id: UUID) -> int | None:
    function_name = get_settings().unread_count_function
    try:
        total = await repo.call_total_unread_count(
            session,
            user_id=user_id,
            function_name=function_name,
        )
    except SQLAlchemyError:
        logger.warning(
            "Aggregate %s() failed; falling back to per-conversation unread counts.",
            function_name,
            exc_info=True,
        )
        return None

    if total is None:
        logger.warning(
            "Aggregate %s() returned no value; falling back to per-conversation unread counts.",
            function_name,
        )
    return total


async def _fallback_unread_count(session: AsyncSession, user_id: UUID) -> int:
    try:
        participations = await repo.list_active_participations(session, user_id=user_id)
        if not participations:
            return 0

        total = 0
        # AsyncSession does not allow concurrent statements, so counts run one at a time.
        for participation in participations:
            total += await repo.count_unread_messages(
                session,
                conversation_id=participation.conversation_id,
                user_id=user_id,
                since=participation.last_read_at or repo.UNREAD_EPOCH,
            )
    except SQLAlchemyError as exc:
        logger.error("Fallback unread count failed for user %s.", user_id, exc_info=True)
        raise AggregationUnavailableError(
            "Unread message count is temporarily unavailable."
        ) from exc
    return total


async def unread_count_for(session: AsyncSession, user_id: UUID | str) -> int:
    """Total messages ``user_id`` has not read across their active conversations.

    The server-side aggregate is authoritative when it answers. Otherwise the
    count is rebuilt from one query per conversation, and any failure there
    raises ``AggregationUnavailableError`` instead of reporting a partial sum.
    """
    user_uuid = to_uuid(user_id)
    total = await _preferred_unread_count(session, user_uuid)
    if total is not None:
        return total
    return await _fallback_unread_count(session, user_uuid)


async def unread_counts_by_conversation(
    session: AsyncSession,
    user_id: UUID | str,
    *,
    conversation_ids: Sequence[UUID | str] | None = None,
) -> list[ConversationUnreadCount]:
    scoped_ids = None
    if conversation_ids is not None:
        if not conversation_ids:
            return []
        scoped_ids = [to_uuid(item) for item in conversation_ids]
    try:
        return await repo.count_unread_by_conversation(
            session,
            user_id=to_uuid(user_id),
            conversation_ids=scoped_ids,
        )
    except SQLAlchemyError as exc:
        logger.error("Per-conversation unread counts failed for user %s.", user_id, exc_info=True)
        raise AggregationUnavailableError(
            "Unread message counts are temporarily unavailable."
        ) from exc


async def mark_conversation_read(
    session: AsyncSession,
    *,
    conversation_id: UUID | str,
    user_id: UUID | str,
) -> datetime:
    read_at = datetime.now(timezone.utc)
    updated = await repo.set_last_read_at(
        session,
        conversation_id=to_uuid(conversation_id),
        user_id=to_uuid(user_id),
        read_at=read_at,
    )
    if not updated:
        raise ParticipantNotFoundError(
            f"User is not an active participant of conversation '{conversation_id}'."
        )
    return read_at


def _sender_display_name(user: CachedUser | None) -> str:
    if user is None:
        return "Someone"
    if user.name:
        return user.name
    if user.email:
        return user.email.split("@", 1)[0]
    return "Someone"


def _to_message_response(row: Message, sender: CachedUser | None) -> MessageResponse:
    return MessageResponse(
        id=str(row.id),
        conversation_id=str(row.conversation_id),
        sender_id=str(row.sender_id) if row.sender_id is not None else None,
        sender=to_user_response(sender) if sender is not None else None,
        content=row.content,
        message_type=row.message_type,
        created_at=row.created_at,
    )


async def _require_participant(
    session: AsyncSession,
    *,
    conversation_id: UUID,
    user_id: UUID,
) -> None:
    if not await repo.is_active_participant(
        session,
        conversation_id=conversation_id,
        user_id=user_id,
    ):
        raise ParticipantNotFoundError(
            f"User is not an active participant of conversation '{conversation_id}'."
        )


async def list_messages(
    session: AsyncSession,
    *,
    conversation_id: UUID | str,
    user_id: UUID | str,
    cache: UserCache,
    cursor: datetime | None = None,
    limit: int = _DEFAULT_PAGE_SIZE,
) -> MessagePageResponse:
    """One page of a conversation in chronological order.

    Pages walk backwards in time: ``cursor`` is the ``created_at`` of the
    oldest message already shown, and the returned cursor is the one to pass
    for the next older page. Deleted messages never appear.
    """
    if limit < 1 or limit > _MAX_PAGE_SIZE:
        raise MessagingValidationError(f"limit must be between 1 and {_MAX_PAGE_SIZE}.")
    conversation_uuid = to_uuid(conversation_id)
    await _require_participant(
        session,
        conversation_id=conversation_uuid,
        user_id=to_uuid(user_id),
    )

    rows = await repo.list_messages_before(
        session,
        conversation_id=conversation_uuid,
        before=cursor,
        limit=limit,
    )
    has_more = len(rows) > limit
    page = rows[:limit]
    next_cursor = page[-1].created_at if has_more else None

    senders = await resolve_users(
        session,
        [row.sender_id for row in page if row.sender_id is not None],
        cache=cache,
    )
    messages = [
        _to_message_response(
            row,
            senders.get(str(row.sender_id)) if row.sender_id is not None else None,
        )
        for row in reversed(page)
    ]
    return MessagePageResponse(messages=messages, has_more=has_more, cursor=next_cursor)


async def send_message(
    session: AsyncSession,
    *,
    conversation_id: UUID | str,
    sender_id: UUID | str,
    content: str,
    cache: UserCache,
    message_type: str = "text",
) -> MessageResponse:
    text = content.strip()
    if not text:
        raise MessagingValidationError("Message content cannot be empty.")
    conversation_uuid = to_uuid(conversation_id)
    sender_uuid = to_uuid(sender_id)
    await _require_participant(session, conversation_id=conversation_uuid, user_id=sender_uuid)

    row = await repo.add_message(
        session,
        conversation_id=conversation_uuid,
        sender_id=sender_uuid,
        content=text,
        message_type=message_type,
        created_at=datetime.now(timezone.utc),
    )

    try:
        sender = await get_user(session, sender_uuid, cache=cache)
    except UserNotFoundError:
        sender = None
    recipients = await repo.list_active_member_ids(
        session,
        conversation_id=conversation_uuid,
        exclude_user_id=sender_uuid,
    )
    staged = stage_notifications(
        session,
        user_ids=recipients,
        type="message",
        title=f"New message from {_sender_display_name(sender)}",
        body=text[:_NOTIFICATION_PREVIEW_LENGTH],
    )
    await session.commit()
    logger.debug(
        "Message %s sent to conversation %s; %d notification(s) staged.",
        row.id,
        conversation_uuid,
        staged,
    )
    return _to_message_response(row, sender)


async def leave_conversation(
    session: AsyncSession,
    *,
    conversation_id: UUID | str,
    user_id: UUID | str,
) -> datetime:
    left_at = datetime.now(timezone.utc)
    updated = await repo.set_left_at(
        session,
        conversation_id=to_uuid(conversation_id),
        user_id=to_uuid(user_id),
        left_at=left_at,
    )
    if not updated:
        raise ParticipantNotFoundError(
            f"User is not an active participant of conversation '{conversation_id}'."
        )
    return left_at
