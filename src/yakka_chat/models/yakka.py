"""Meetup (YAKKA) rows touched by the moderation sweep."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from yakka_chat.db.session import Base


class YakkaStatus(str, enum.Enum):
    """Lifecycle states of a 1:1 meetup."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class Yakka(Base):
    """A scheduled 1:1 meetup between an organiser and an invitee."""

    __tablename__ = "yakka"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organiser_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invitee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[YakkaStatus] = mapped_column(
        Enum(YakkaStatus, name="yakka_status"),
        nullable=False,
        default=YakkaStatus.PENDING,
    )
