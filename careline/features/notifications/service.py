from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from careline.db.models import Notification
from careline.features.shared.ids import to_uuid

from . import repo
from .errors import NotificationValidationError
from .types import NotificationResponse

_MAX_LIMIT = 100
_MAX_TITLE_LENGTH = 255
logger = logging.getLogger(__name__)


def to_notification_response(row: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=str(row.id),
        type=row.type,
        title=row.title,
        body=row.body,
        is_read=row.is_read,
        read_at=row.read_at,
        created_at=row.created_at,
    )


async def list_notifications(
    session: AsyncSession,
    *,
    user_id: UUID | str,
    unread_only: bool = False,
    limit: int = 50,
) -> list[NotificationResponse]:
    if limit < 1 or limit > _MAX_LIMIT:
        raise NotificationValidationError(f"limit must be between 1 and {_MAX_LIMIT}.")
    rows = await repo.list_notifications(
        session,
        user_id=to_uuid(user_id),
        unread_only=unread_only,
        limit=limit,
    )
    return [to_notification_response(row) for row in rows]


async def count_unread_notifications(session: AsyncSession, *, user_id: UUID | str) -> int:
    return await repo.count_unread_notifications(session, user_id=to_uuid(user_id))


def _normalize_ids(notification_ids: Sequence[UUID | str]) -> list[UUID]:
    normalized: list[UUID] = []
    for item in notification_ids:
        try:
            normalized.append(to_uuid(item))
        except ValueError as exc:
            raise NotificationValidationError(f"Invalid notification id '{item}'.") from exc
    return normalized


async def mark_notifications_read(
    session: AsyncSession,
    *,
    user_id: UUID | str,
    notification_ids: Sequence[UUID | str],
) -> int:
    if not notification_ids:
        raise NotificationValidationError("notification_ids cannot be empty.")
    updated = await repo.mark_read(
        session,
        user_id=to_uuid(user_id),
        read_at=datetime.now(timezone.utc),
        notification_ids=_normalize_ids(notification_ids),
    )
    logger.debug("Marked %d notification(s) read for user %s.", updated, user_id)
    return updated


async def mark_all_notifications_read(session: AsyncSession, *, user_id: UUID | str) -> int:
    updated = await repo.mark_read(
        session,
        user_id=to_uuid(user_id),
        read_at=datetime.now(timezone.utc),
    )
    logger.debug("Marked all %d unread notification(s) read for user %s.", updated, user_id)
    return updated


def stage_notifications(
    session: AsyncSession,
    *,
    user_ids: Sequence[UUID | str],
    type: str,
    title: str,
    body: str | None = None,
) -> int:
    recipients = [to_uuid(item) for item in user_ids]
    if not recipients:
        return 0
    rows = repo.add_notifications(
        session,
        user_ids=recipients,
        type=type,
        title=title[:_MAX_TITLE_LENGTH],
        body=body,
    )
    return len(rows)
