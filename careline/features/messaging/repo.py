from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from careline.db.models import Conversation, ConversationParticipant, Message

from .types import ConversationUnreadCount, ParticipationWatermark

# Watermark used when a participant has never read the conversation.
UNREAD_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _unread_message_filter(*, user_id: UUID, since):
    return and_(
        Message.created_at > since,
        Message.sender_id.is_not(None),
        Message.sender_id != user_id,
        Message.is_deleted.is_(False),
    )


async def call_total_unread_count(
    session: AsyncSession,
    *,
    user_id: UUID,
    function_name: str,
) -> int | None:
    aggregate = getattr(func, function_name)
    # A failing call must not abort the caller's transaction.
    async with session.begin_nested():
        result = await session.execute(select(aggregate(user_id)))
        value = result.scalar_one_or_none()
    if value is None:
        return None
    return int(value)


async def list_active_participations(
    session: AsyncSession,
    *,
    user_id: UUID,
) -> list[ParticipationWatermark]:
    stmt = select(
        ConversationParticipant.conversation_id,
        ConversationParticipant.last_read_at,
    ).where(
        ConversationParticipant.user_id == user_id,
        ConversationParticipant.left_at.is_(None),
    )
    rows = (await session.execute(stmt)).all()
    return [
        ParticipationWatermark(conversation_id=conversation_id, last_read_at=last_read_at)
        for conversation_id, last_read_at in rows
    ]


async def count_unread_messages(
    session: AsyncSession,
    *,
    conversation_id: UUID,
    user_id: UUID,
    since: datetime,
) -> int:
    stmt = select(func.count(Message.id)).where(
        Message.conversation_id == conversation_id,
        _unread_message_filter(user_id=user_id, since=since),
    )
    result = await session.execute(stmt)
    return int(result.scalar_one() or 0)


async def count_unread_by_conversation(
    session: AsyncSession,
    *,
    user_id: UUID,
    conversation_ids: Sequence[UUID] | None = None,
) -> list[ConversationUnreadCount]:
    watermark = func.coalesce(ConversationParticipant.last_read_at, UNREAD_EPOCH)
    stmt = (
        select(
            ConversationParticipant.conversation_id,
            func.count(Message.id).label("unread_count"),
        )
        .outerjoin(
            Message,
            and_(
                Message.conversation_id == ConversationParticipant.conversation_id,
                _unread_message_filter(user_id=user_id, since=watermark),
            ),
        )
        .where(
            ConversationParticipant.user_id == user_id,
            ConversationParticipant.left_at.is_(None),
        )
        .group_by(ConversationParticipant.conversation_id)
        .order_by(ConversationParticipant.conversation_id)
    )
    if conversation_ids is not None:
        stmt = stmt.where(ConversationParticipant.conversation_id.in_(list(conversation_ids)))

    rows = (await session.execute(stmt)).all()
    return [
        ConversationUnreadCount(conversation_id=conversation_id, unread_count=int(count or 0))
        for conversation_id, count in rows
    ]


async def set_last_read_at(
    session: AsyncSession,
    *,
    conversation_id: UUID,
    user_id: UUID,
    read_at: datetime,
) -> bool:
    stmt = (
        update(ConversationParticipant)
        .where(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id == user_id,
            ConversationParticipant.left_at.is_(None),
        )
        .values(last_read_at=read_at)
    )
    result = await session.execute(stmt)
    await session.commit()
    return bool(result.rowcount)


async def is_active_participant(
    session: AsyncSession,
    *,
    conversation_id: UUID,
    user_id: UUID,
) -> bool:
    stmt = select(ConversationParticipant.id).where(
        ConversationParticipant.conversation_id == conversation_id,
        ConversationParticipant.user_id == user_id,
        ConversationParticipant.left_at.is_(None),
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none() is not None


async def list_active_member_ids(
    session: AsyncSession,
    *,
    conversation_id: UUID,
    exclude_user_id: UUID | None = None,
) -> list[UUID]:
    stmt = select(ConversationParticipant.user_id).where(
        ConversationParticipant.conversation_id == conversation_id,
        ConversationParticipant.left_at.is_(None),
    )
    if exclude_user_id is not None:
        stmt = stmt.where(ConversationParticipant.user_id != exclude_user_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_messages_before(
    session: AsyncSession,
    *,
    conversation_id: UUID,
    before: datetime | None,
    limit: int,
) -> list[Message]:
    """Newest-first page of visible messages, fetching ``limit`` rows plus one extra."""
    stmt = (
        select(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.is_deleted.is_(False),
        )
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit + 1)
    )
    if before is not None:
        stmt = stmt.where(Message.created_at < before)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def add_message(
    session: AsyncSession,
    *,
    conversation_id: UUID,
    sender_id: UUID,
    content: str,
    message_type: str,
    created_at: datetime,
) -> Message:
    message = Message(
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        message_type=message_type,
        created_at=created_at,
    )
    session.add(message)
    await session.execute(
        update(Conversation)
        .where(Conversation.id == conversation_id)
        .values(last_message_at=created_at)
    )
    await session.flush()
    return message


async def set_left_at(
    session: AsyncSession,
    *,
    conversation_id: UUID,
    user_id: UUID,
    left_at: datetime,
) -> bool:
    stmt = (
        update(ConversationParticipant)
        .where(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id == user_id,
            ConversationParticipant.left_at.is_(None),
        )
        .values(left_at=left_at)
    )
    result = await session.execute(stmt)
    await session.commit()
    return bool(result.rowcount)
