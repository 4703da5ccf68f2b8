from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from careline.features.users.types import UserResponse

MessageType = Literal["text", "system", "attachment"]


@dataclass(frozen=True)
class ParticipationWatermark:
    conversation_id: UUID
    last_read_at: datetime | None


@dataclass(frozen=True)
class ConversationUnreadCount:
    conversation_id: UUID
    unread_count: int


class UnreadCountResponse(BaseModel):
    count: int


class ConversationUnreadItem(BaseModel):
    conversation_id: str
    unread_count: int


class ConversationUnreadListResponse(BaseModel):
    items: list[ConversationUnreadItem]
    total: int


class MarkReadResponse(BaseModel):
    success: bool
    last_read_at: datetime


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str | None
    sender: UserResponse | None
    content: str
    message_type: MessageType
    created_at: datetime


class MessagePageResponse(BaseModel):
    messages: list[MessageResponse]
    has_more: bool
    cursor: datetime | None


class SendMessageInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str = Field(max_length=10_000)
    message_type: MessageType = "text"


class LeaveConversationResponse(BaseModel):
    success: bool
    left_at: datetime
