from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    body: str | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime


class NotificationReadInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    notification_ids: list[str] | None = None
    mark_all_read: bool = False


class NotificationUnreadCountResponse(BaseModel):
    count: int


class NotificationsUpdatedResponse(BaseModel):
    updated: int
