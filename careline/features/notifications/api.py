from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from careline.db.session import get_db_session
from careline.features.shared.auth import get_current_user_id

from .errors import NotificationValidationError
from .service import (
    count_unread_notifications,
    list_notifications,
    mark_all_notifications_read,
    mark_notifications_read,
)
from .types import (
    NotificationReadInput,
    NotificationResponse,
    NotificationsUpdatedResponse,
    NotificationUnreadCountResponse,
)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _raise_http_error(exc: Exception) -> None:
    if isinstance(exc, NotificationValidationError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    raise exc


@router.get("", response_model=list[NotificationResponse])
async def get_notifications(
    unread: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=100),
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> list[NotificationResponse]:
    return await list_notifications(session, user_id=user_id, unread_only=unread, limit=limit)


@router.get("/unread-count", response_model=NotificationUnreadCountResponse)
async def get_notification_unread_count(
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> NotificationUnreadCountResponse:
    count = await count_unread_notifications(session, user_id=user_id)
    return NotificationUnreadCountResponse(count=count)


@router.patch("", response_model=NotificationsUpdatedResponse)
async def patch_notifications(
    payload: NotificationReadInput,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> NotificationsUpdatedResponse:
    try:
        if payload.mark_all_read:
            updated = await mark_all_notifications_read(session, user_id=user_id)
        elif payload.notification_ids is not None:
            updated = await mark_notifications_read(
                session,
                user_id=user_id,
                notification_ids=payload.notification_ids,
            )
        else:
            raise NotificationValidationError(
                "Provide notification_ids or set mark_all_read."
            )
    except Exception as exc:
        _raise_http_error(exc)
    return NotificationsUpdatedResponse(updated=updated)


@router.patch("/read-all", response_model=NotificationsUpdatedResponse)
async def patch_notifications_read_all(
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> NotificationsUpdatedResponse:
    updated = await mark_all_notifications_read(session, user_id=user_id)
    return NotificationsUpdatedResponse(updated=updated)
