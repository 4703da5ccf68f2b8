from __future__ import annotations

from .errors import NotificationValidationError, NotificationsDomainError
from .service import (
    count_unread_notifications,
    list_notifications,
    mark_all_notifications_read,
    mark_notifications_read,
    stage_notifications,
)
from .types import NotificationResponse

__all__ = [
    "NotificationResponse",
    "NotificationValidationError",
    "NotificationsDomainError",
    "count_unread_notifications",
    "list_notifications",
    "mark_all_notifications_read",
    "mark_notifications_read",
    "stage_notifications",
]
