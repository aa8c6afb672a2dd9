"""SQLAlchemy models for the Yakka chat service."""

from .chat import Chat, Message, MessageType, UserChat
from .moderation import AutoBanWord, BannedUser, FlaggedMessage, FlaggedWord
from .user import User, UserSession
from .yakka import Yakka, YakkaStatus

__all__ = [
    "Chat", "Message", "MessageType", "UserChat",
    "AutoBanWord", "BannedUser", "FlaggedMessage", "FlaggedWord",
    "User", "UserSession",
    "Yakka", "YakkaStatus",
]
