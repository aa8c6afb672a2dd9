"""Repository layer wrapping SQLAlchemy sessions."""

from .chat_repo import ChatRepository
from .moderation_repo import ModerationRepository, SweepWrite, UnscannedMessage

__all__ = ["ChatRepository", "ModerationRepository", "SweepWrite", "UnscannedMessage"]
