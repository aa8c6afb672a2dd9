"""Models tracking chat moderation outcomes and word lists."""

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from yakka_chat.db.session import Base
from yakka_chat.db.time import utcnow


class FlaggedMessage(Base):
    """A message that matched the soft flagged word list."""

    __tablename__ = "flagged_message"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("message.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow)


class BannedUser(Base):
    """Permanent ban record; at most one per user."""

    __tablename__ = "banned_user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)


class FlaggedWord(Base):
    """Entry of the soft moderation list; matches are recorded only."""

    __tablename__ = "flagged_word"

    word: Mapped[str] = mapped_column(Text, primary_key=True)


class AutoBanWord(Base):
    """Entry of the hard moderation list; matches ban the sender."""

    __tablename__ = "auto_ban_word"

    word: Mapped[str] = mapped_column(Text, primary_key=True)
