from .messaging import Conversation, ConversationParticipant, Message
from .notifications import Notification
from .users import User

__all__ = [
    "Conversation",
    "ConversationParticipant",
    "Message",
    "Notification",
    "User",
]
