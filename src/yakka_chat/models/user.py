"""SQLAlchemy models for user identities and login sessions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from yakka_chat.db.session import Base
from yakka_chat.db.time import utcnow


class User(Base):
    """Profile fields the chat core needs from the wider user record."""

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    push_notification_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Filename of the first profile image under the user's storage prefix.
    image_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    sessions: Mapped[list[UserSession]] = relationship(
        "UserSession",
        back_populates="user",
        cascade="all, delete-orphan",
    )


class UserSession(Base):
    """Login session; access tokens carry its id in the ``sid`` claim."""

    __tablename__ = "user_session"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    user: Mapped[User] = relationship("User", back_populates="sessions")
