from __future__ import annotations

from .errors import (
    AggregationUnavailableError,
    MessagingDomainError,
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
    ConversationUnreadCount,
    MessagePageResponse,
    MessageResponse,
    ParticipationWatermark,
)

__all__ = [
    "AggregationUnavailableError",
    "ConversationUnreadCount",
    "MessagePageResponse",
    "MessageResponse",
    "MessagingDomainError",
    "MessagingValidationError",
    "ParticipantNotFoundError",
    "ParticipationWatermark",
    "leave_conversation",
    "list_messages",
    "mark_conversation_read",
    "send_message",
    "unread_count_for",
    "unread_counts_by_conversation",
]
