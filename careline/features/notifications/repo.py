from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from careline.db.models import Notification


async def list_notifications(
    session: AsyncSession,
    *,
    user_id: UUID,
    unread_only: bool,
    limit: int,
) -> list[Notification]:
    stmt = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_unread_notifications(session: AsyncSession, *, user_id: UUID) -> int:
    stmt = select(func.count(Notification.id)).where(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    )
    result = await session.execute(stmt)
    return int(result.scalar_one() or 0)


async def mark_read(
    session: AsyncSession,
    *,
    user_id: UUID,
    read_at: datetime,
    notification_ids: Sequence[UUID] | None = None,
) -> int:
    stmt = (
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True, read_at=read_at)
    )
    if notification_ids is not None:
        stmt = stmt.where(Notification.id.in_(list(notification_ids)))
    result = await session.execute(stmt)
    await session.commit()
    return int(result.rowcount or 0)


def add_notifications(
    session: AsyncSession,
    *,
    user_ids: Sequence[UUID],
    type: str,
    title: str,
    body: str | None,
) -> list[Notification]:
    """Stage one notification per recipient; the caller owns the commit."""
    rows = [
        Notification(user_id=user_id, type=type, title=title, body=body)
        for user_id in user_ids
    ]
    session.add_all(rows)
    return rows
