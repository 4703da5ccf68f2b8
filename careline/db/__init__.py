from .base import Base
from .models import (
    Conversation,
    ConversationParticipant,
    Message,
    Notification,
    User,
)

__all__ = [
    "Base",
    "Conversation",
    "ConversationParticipant",
    "Message",
    "Notification",
    "User",
]
