"""Data access helpers for the chat moderation sweep."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from yakka_chat.models import (
    AutoBanWord,
    BannedUser,
    Chat,
    FlaggedMessage,
    FlaggedWord,
    Message,
    MessageType,
    User,
    UserSession,
    Yakka,
    YakkaStatus,
)

__all__ = ["ModerationRepository", "SweepWrite", "UnscannedMessage"]

# Meetups in these states are still going ahead and get cancelled on ban.
_ACTIVE_YAKKA_STATES = (YakkaStatus.PENDING, YakkaStatus.ACCEPTED)


@dataclass(frozen=True)
class UnscannedMessage:
    """A TEXT message awaiting moderation with the context needed to scan it."""

    id: int
    sender_id: int
    content: str
    wrapped_key: str
    sender_push_token: str | None


@dataclass(frozen=True)
class SweepWrite:
    """Row counts produced by one committed sweep transaction."""

    scanned: int
    flagged: int
    banned_user_ids: tuple[int, ...]
    revoked_sessions: int
    declined_yakkas: int


class ModerationRepository:
    """Reads moderation inputs and writes sweep outcomes atomically."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def fetch_unscanned_text_messages(self) -> list[UnscannedMessage]:
        """Return every TEXT message not yet scanned, joined with key and push token."""
        result = self.session.execute(
            select(
                Message.id,
                Message.sender_id,
                Message.content,
                Chat.data_key,
                User.push_notification_token,
            )
            .join(Chat, Chat.id == Message.chat_id)
            .join(User, User.id == Message.sender_id)
            .where(
                Message.type == MessageType.TEXT,
                Message.checked_for_profanity.is_(False),
            )
            .order_by(Message.id)
        )
        return [
            UnscannedMessage(
                id=row.id,
                sender_id=row.sender_id,
                content=row.content,
                wrapped_key=row.data_key,
                sender_push_token=row.push_notification_token,
            )
            for row in result.all()
        ]

    def flagged_words(self) -> list[str]:
        """Return the current soft flagged word list."""
        return list(self.session.scalars(select(FlaggedWord.word)))

    def auto_ban_words(self) -> list[str]:
        """Return the current hard auto-ban word list."""
        return list(self.session.scalars(select(AutoBanWord.word)))

    def apply_sweep(
        self,
        *,
        scanned_ids: Iterable[int],
        flagged_ids: Iterable[int],
        ban_user_ids: Iterable[int],
        reason: str,
        now: datetime,
    ) -> SweepWrite:
        """Write all sweep effects in a single transaction.

        Inserts skip rows that already exist, so repeating a sweep over the
        same messages creates nothing new. Any failure rolls the whole write back.
        """
        scanned = sorted(set(scanned_ids))
        flagged = sorted(set(flagged_ids))
        to_ban = sorted(set(ban_user_ids))

        try:
            if scanned:
                self.session.execute(
                    update(Message)
                    .where(Message.id.in_(scanned))
                    .values(checked_for_profanity=True)
                    .execution_options(synchronize_session=False)
                )

            new_flags = self._missing(FlaggedMessage.message_id, flagged)
            self.session.add_all(FlaggedMessage(message_id=message_id) for message_id in new_flags)

            revoked = 0
            declined = 0
            new_bans: list[int] = []
            if to_ban:
                revoked = self.session.execute(
                    delete(UserSession).where(UserSession.user_id.in_(to_ban))
                    .execution_options(synchronize_session=False)
                ).rowcount or 0

                new_bans = self._missing(BannedUser.user_id, to_ban)
                self.session.add_all(
                    BannedUser(user_id=user_id, reason=reason) for user_id in new_bans
                )

                declined = self.session.execute(
                    update(Yakka)
                    .where(
                        or_(Yakka.organiser_id.in_(to_ban), Yakka.invitee_id.in_(to_ban)),
                        Yakka.date > now,
                        Yakka.status.in_(_ACTIVE_YAKKA_STATES),
                    )
                    .values(status=YakkaStatus.DECLINED)
                    .execution_options(synchronize_session=False)
                ).rowcount or 0

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        return SweepWrite(
            scanned=len(scanned),
            flagged=len(new_flags),
            banned_user_ids=tuple(new_bans),
            revoked_sessions=revoked,
            declined_yakkas=declined,
        )

    def _missing(self, column, candidates: list[int]) -> list[int]:
        """Return the candidates that have no row yet in ``column``'s table."""
        if not candidates:
            return []
        existing = set(self.session.scalars(select(column).where(column.in_(candidates))))
        return [value for value in candidates if value not in existing]
