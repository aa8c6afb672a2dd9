"""Two-stage handshake that turns a socket connection into a chat session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from yakka_chat.core.errors import AuthorizationError
from yakka_chat.core.security import TokenClaims, TokenVerifier
from yakka_chat.repositories import ChatRepository
from yakka_chat.services.crypto import KeyVault
from yakka_chat.services.storage import ObjectStorage, user_images_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SenderProfile:
    """The connected user, as shown to the other participant."""

    id: int
    first_name: str | None
    last_name: str | None
    push_token: str | None
    image: str | None


@dataclass(frozen=True)
class RecipientProfile:
    """The other participant of the chat."""

    id: int
    first_name: str | None
    push_token: str | None


@dataclass(frozen=True)
class SessionContext:
    """Everything a live socket needs, built once during the handshake."""

    chat_id: str
    session_id: int
    sender: SenderProfile
    recipient: RecipientProfile
    data_key: bytes = field(repr=False)


class ChatSessionGate:
    """Authenticates a connection, then authorizes it against one chat.

    Stage 1 verifies the bearer token. Stage 2 only runs for authenticated
    callers: it checks chat membership, unwraps the chat key and resolves both
    participants' profiles.
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        key_vault: KeyVault,
        storage: ObjectStorage,
    ) -> None:
        self._verifier = verifier
        self._key_vault = key_vault
        self._storage = storage

    def authenticate(self, token: str | None, db: Session) -> TokenClaims:
        """Stage 1; raises ``AuthError`` (``invalid_token``)."""
        return self._verifier.verify(token, db)

    def authorize(self, claims: TokenClaims, chat_id: str | None, db: Session) -> SessionContext:
        """Stage 2; raises ``AuthorizationError`` (``invalid_chat_id``)."""
        if not chat_id:
            raise AuthorizationError("Missing chat id")

        repo = ChatRepository(db)
        membership = repo.get_membership(claims.user_id, chat_id)
        if membership is None:
            logger.info("User %s is not a member of chat %s", claims.user_id, chat_id)
            raise AuthorizationError("Not a participant of this chat")

        participants = repo.get_participants(chat_id)
        sender = next((user for user in participants if user.id == claims.user_id), None)
        recipient = next((user for user in participants if user.id != claims.user_id), None)
        if sender is None or recipient is None:
            raise AuthorizationError("Chat does not have two participants")

        data_key = self._key_vault.unwrap(membership.chat.data_key)

        return SessionContext(
            chat_id=chat_id,
            session_id=claims.session_id,
            sender=SenderProfile(
                id=sender.id,
                first_name=sender.first_name,
                last_name=sender.last_name,
                push_token=sender.push_notification_token,
                image=self._storage.public_url(sender.image_name, user_images_path(sender.id)),
            ),
            recipient=RecipientProfile(
                id=recipient.id,
                first_name=recipient.first_name,
                push_token=recipient.push_notification_token,
            ),
            data_key=data_key,
        )

    def open_session(self, token: str | None, chat_id: str | None, db: Session) -> SessionContext:
        """Run both stages in order and return the session context."""
        claims = self.authenticate(token, db)
        return self.authorize(claims, chat_id, db)
