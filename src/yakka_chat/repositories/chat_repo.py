"""Data access helpers for chats, memberships and messages."""
from __future__ import annotations

from sqlalchemy import and_, select, update
from sqlalchemy.orm import Session, aliased, selectinload

from yakka_chat.models import Chat, Message, MessageType, User, UserChat

__all__ = ["ChatRepository"]


class ChatRepository:
    """Thin wrapper around database access for chat entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_user(self, user_id: int) -> User | None:
        """Return a user by identifier."""
        return self.session.get(User, user_id)

    def get_membership(self, user_id: int, chat_id: str) -> UserChat | None:
        """Return the membership row for ``(user_id, chat_id)`` with its chat loaded."""
        result = self.session.execute(
            select(UserChat)
            .options(selectinload(UserChat.chat))
            .where(UserChat.user_id == user_id, UserChat.chat_id == chat_id)
        )
        return result.scalars().first()

    def get_participants(self, chat_id: str) -> list[User]:
        """Return the users holding a membership in the chat."""
        result = self.session.execute(
            select(User)
            .join(UserChat, UserChat.user_id == User.id)
            .where(UserChat.chat_id == chat_id)
            .order_by(User.id)
        )
        return list(result.scalars())

    def find_chat_between(self, user_a: int, user_b: int) -> Chat | None:
        """Return the chat both users already share, if any."""
        member_a = aliased(UserChat)
        member_b = aliased(UserChat)
        result = self.session.execute(
            select(Chat)
            .join(member_a, and_(member_a.chat_id == Chat.id, member_a.user_id == user_a))
            .join(member_b, and_(member_b.chat_id == Chat.id, member_b.user_id == user_b))
        )
        return result.scalars().first()

    def create_chat(self, user_a: int, user_b: int, data_key: str) -> Chat:
        """Insert a chat with memberships for both participants and commit."""
        chat = Chat(data_key=data_key)
        chat.members = [
            UserChat(user_id=user_a, has_unread_messages=False),
            UserChat(user_id=user_b, has_unread_messages=False),
        ]
        self.session.add(chat)
        self.session.commit()
        self.session.refresh(chat)
        return chat

    def add_message(
        self,
        *,
        chat_id: str,
        sender_id: int,
        content: str,
        message_type: MessageType,
        media_url: str | None = None,
    ) -> Message:
        """Persist a new message row and return it.

        Args:
            chat_id: Chat the message belongs to.
            sender_id: Author of the message.
            content: Ciphertext for TEXT messages, fallback text otherwise.
            message_type: One of the :class:`MessageType` values.
            media_url: Stored object filename for IMAGE/AUDIO messages.
        """
        message = Message(
            chat_id=chat_id,
            sender_id=sender_id,
            content=content,
            type=message_type,
            media_url=media_url,
            checked_for_profanity=False,
        )
        self.session.add(message)
        self.session.commit()
        self.session.refresh(message)
        return message

    def set_unread(self, chat_id: str, user_id: int, has_unread: bool) -> None:
        """Set a single member's unread flag for the chat."""
        self.session.execute(
            update(UserChat)
            .where(UserChat.chat_id == chat_id, UserChat.user_id == user_id)
            .values(has_unread_messages=has_unread)
        )
        self.session.commit()

    def list_messages(self, chat_id: str, *, page: int, limit: int) -> list[Message]:
        """Return one page of a chat's messages, newest first."""
        result = self.session.execute(
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .offset(page * limit)
            .limit(limit)
        )
        return list(result.scalars())

    def list_chats_for_user(self, user_id: int, *, page: int, limit: int) -> list[Chat]:
        """Return the user's chats that contain at least one message."""
        has_messages = select(Message.id).where(Message.chat_id == Chat.id).exists()
        result = self.session.execute(
            select(Chat)
            .join(UserChat, UserChat.chat_id == Chat.id)
            .where(UserChat.user_id == user_id, has_messages)
            .order_by(Chat.created_at.desc())
            .offset(page * limit)
            .limit(limit)
        )
        return list(result.scalars())

    def latest_messages(self, chat_id: str, limit: int = 1) -> list[Message]:
        """Return the newest ``limit`` messages of a chat."""
        return self.list_messages(chat_id, page=0, limit=limit)

    def unread_flags(self, user_id: int, chat_ids: list[str]) -> dict[str, bool]:
        """Map chat id to the user's unread flag for the given chats."""
        if not chat_ids:
            return {}
        result = self.session.execute(
            select(UserChat.chat_id, UserChat.has_unread_messages).where(
                UserChat.user_id == user_id,
                UserChat.chat_id.in_(chat_ids),
            )
        )
        return {chat_id: bool(flag) for chat_id, flag in result.all()}
