"""Models describing 1:1 chats, their memberships and messages."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from yakka_chat.db.session import Base
from yakka_chat.db.time import utcnow


class MessageType(str, enum.Enum):
    """Kinds of chat payload accepted over the socket."""

    TEXT = "TEXT"
    IMAGE = "IMAGE"
    AUDIO = "AUDIO"


def _new_chat_id() -> str:
    return uuid.uuid4().hex


class Chat(Base):
    """A conversation between exactly two users.

    ``data_key`` holds the chat's symmetric key wrapped under the master key.
    It is written once at creation and never rotated.
    """

    __tablename__ = "chat"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_chat_id)
    data_key: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    members: Mapped[list[UserChat]] = relationship(
        "UserChat",
        back_populates="chat",
        cascade="all, delete-orphan",
    )
    messages: Mapped[list[Message]] = relationship("Message", back_populates="chat")


class UserChat(Base):
    """Membership of a user in a chat along with their unread state."""

    __tablename__ = "user_chat"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    chat_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("chat.id", ondelete="CASCADE"),
        primary_key=True,
    )
    has_unread_messages: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    chat: Mapped[Chat] = relationship("Chat", back_populates="members")


class Message(Base):
    """A single chat entry.

    TEXT content is ciphertext under the chat key. IMAGE and AUDIO content is
    a human readable fallback string and ``media_url`` names the stored object.
    """

    __tablename__ = "message"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("chat.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[MessageType] = mapped_column(
        Enum(MessageType, name="message_type"),
        nullable=False,
        default=MessageType.TEXT,
    )
    media_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Flipped to True in bulk by the moderation sweep; never reverted.
    checked_for_profanity: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    chat: Mapped[Chat] = relationship("Chat", back_populates="messages")
