"""Event handling for live, authorized chat sockets."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError
from sqlalchemy.orm import Session

from yakka_chat.core.errors import ChatError
from yakka_chat.db.time import isoformat_utc
from yakka_chat.models import MessageType
from yakka_chat.repositories import ChatRepository
from yakka_chat.schemas.chat import MessageError, MessageSentAck, PrivateMessageIn, RelayedMessage
from yakka_chat.services.chat_gate import SessionContext
from yakka_chat.services.crypto import MessageCipher
from yakka_chat.services.notifications import PushMessage, PushNotificationSender
from yakka_chat.services.rooms import EventSocket, RoomManager
from yakka_chat.services.storage import (
    ObjectStorage,
    chat_audio_path,
    chat_images_path,
    decode_base64_payload,
)

logger = logging.getLogger(__name__)

PRIVATE_MESSAGE = "private_message"
TYPING = "typing"
STOP_TYPING = "stop_typing"
MESSAGE_READ = "message_read"
MESSAGE_SENT = "message_sent"
MESSAGE_ERROR = "message_error"

PREVIEW_LENGTH = 20
NEW_MESSAGE_NOTIFICATION = "NEW_MESSAGE"


def preview_text(content: str, limit: int = PREVIEW_LENGTH) -> str:
    """Return the first ``limit`` characters, with an ellipsis if truncated."""
    return content[:limit] + "..." if len(content) > limit else content


def media_fallback_text(message_type: MessageType, first_name: str | None) -> str:
    """Human readable stand-in stored as the content of media messages."""
    if message_type is MessageType.IMAGE:
        return f"{first_name} sent an image" if first_name else "Image"
    return f"{first_name} sent a voice message" if first_name else "Voice message"


class ChatRelay:
    """Routes socket events for a chat session to storage, peers and push."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        cipher: MessageCipher,
        storage: ObjectStorage,
        push_sender: PushNotificationSender,
        rooms: RoomManager,
    ) -> None:
        self._session_factory = session_factory
        self._cipher = cipher
        self._storage = storage
        self._push = push_sender
        self.rooms = rooms

    def connect(self, socket: EventSocket, ctx: SessionContext) -> None:
        self.rooms.join(ctx.chat_id, socket)
        logger.debug("User %s joined chat %s", ctx.sender.id, ctx.chat_id)

    def disconnect(self, socket: EventSocket, ctx: SessionContext) -> None:
        self.rooms.leave(ctx.chat_id, socket)
        logger.debug("User %s left chat %s", ctx.sender.id, ctx.chat_id)

    async def dispatch(
        self,
        socket: EventSocket,
        ctx: SessionContext,
        event: str,
        data: dict[str, Any] | None,
    ) -> None:
        """Handle one client event; errors are reported to the sender only.

        The socket stays usable after a failed event.
        """
        data = data or {}
        correlation_id = data.get("id") if isinstance(data.get("id"), str) else None
        try:
            if event == PRIVATE_MESSAGE:
                await self.handle_private_message(socket, ctx, data)
            elif event == TYPING:
                await self.handle_typing(socket, ctx)
            elif event == STOP_TYPING:
                await self.handle_stop_typing(socket, ctx)
            elif event == MESSAGE_READ:
                await self.handle_message_read(ctx)
            else:
                logger.debug("Ignoring unknown event %r from user %s", event, ctx.sender.id)
        except ValidationError as err:
            logger.info("Invalid %s payload from user %s: %s", event, ctx.sender.id, err)
            await self._report_error(socket, "invalid_payload", correlation_id)
        except ChatError as err:
            logger.warning("Failed to handle %s in chat %s: %s", event, ctx.chat_id, err)
            await self._report_error(socket, err.code, correlation_id)
        except Exception:
            logger.exception("Unexpected error handling %s in chat %s", event, ctx.chat_id)
            await self._report_error(socket, "internal_error", correlation_id)

    async def handle_private_message(
        self,
        socket: EventSocket,
        ctx: SessionContext,
        data: dict[str, Any],
    ) -> None:
        """Store, relay and notify for one outgoing message.

        The message row is written before the peer sees the relay, so a
        failed write never leaves the other participant with a phantom message.
        """
        incoming = PrivateMessageIn.model_validate(data)
        media_url: str | None = None
        stored_media: str | None = None

        if incoming.type is MessageType.TEXT:
            relay_content = incoming.content
            stored_content = self._cipher.encrypt(incoming.content, ctx.data_key)
        else:
            payload = decode_base64_payload(incoming.content)
            if incoming.type is MessageType.IMAGE:
                stored = await self._storage.upload(
                    payload,
                    chat_images_path(ctx.chat_id),
                    extension="jpeg",
                    content_type="image/jpeg",
                )
            else:
                stored = await self._storage.upload(
                    payload,
                    chat_audio_path(ctx.chat_id),
                    extension="m4a",
                    content_type="audio/m4a",
                )
            stored_media = stored.file_name
            media_url = await self._storage.presigned_get(stored.file_name, stored.path)
            relay_content = stored_content = media_fallback_text(incoming.type, ctx.sender.first_name)

        with self._session_factory() as db:
            repo = ChatRepository(db)
            message = repo.add_message(
                chat_id=ctx.chat_id,
                sender_id=ctx.sender.id,
                content=stored_content,
                message_type=incoming.type,
                media_url=stored_media,
            )
            repo.set_unread(ctx.chat_id, ctx.recipient.id, True)
            message_id = message.id
            sent_at = isoformat_utc(message.created_at)

        relayed = RelayedMessage(
            content=relay_content,
            sender_id=ctx.sender.id,
            type=incoming.type,
            media_url=media_url,
            sent_at=sent_at,
            id=incoming.id,
        )
        await self.rooms.emit_to_room(
            ctx.chat_id,
            PRIVATE_MESSAGE,
            relayed.model_dump(mode="json", by_alias=True),
            skip=socket,
        )
        ack = MessageSentAck(id=incoming.id, message_id=message_id, sent_at=sent_at)
        try:
            await socket.emit(MESSAGE_SENT, ack.model_dump(mode="json", by_alias=True))
        except Exception as err:  # noqa: BLE001 - sender already gone
            logger.debug("Could not acknowledge message %s to socket %s: %s", message_id, socket.sid, err)

        if incoming.type is MessageType.TEXT:
            body = f"{ctx.sender.first_name or 'New Message'}: {preview_text(incoming.content)}"
        else:
            body = stored_content
        await self._push.send(
            [
                PushMessage(
                    token=ctx.recipient.push_token,
                    body=body,
                    data={
                        "chatId": ctx.chat_id,
                        "type": NEW_MESSAGE_NOTIFICATION,
                        "friend": {
                            "id": ctx.sender.id,
                            "firstName": ctx.sender.first_name,
                            "lastName": ctx.sender.last_name,
                            "image": ctx.sender.image,
                        },
                    },
                )
            ]
        )

    async def handle_typing(self, socket: EventSocket, ctx: SessionContext) -> None:
        await self.rooms.emit_to_room(ctx.chat_id, TYPING, {"senderId": ctx.sender.id}, skip=socket)

    async def handle_stop_typing(self, socket: EventSocket, ctx: SessionContext) -> None:
        await self.rooms.emit_to_room(
            ctx.chat_id, STOP_TYPING, {"senderId": ctx.sender.id}, skip=socket
        )

    async def handle_message_read(self, ctx: SessionContext) -> None:
        """Clear the caller's own unread flag for this chat."""
        with self._session_factory() as db:
            ChatRepository(db).set_unread(ctx.chat_id, ctx.sender.id, False)

    async def _report_error(
        self,
        socket: EventSocket,
        code: str,
        correlation_id: str | None,
    ) -> None:
        try:
            await socket.emit(
                MESSAGE_ERROR,
                MessageError(error=code, id=correlation_id).model_dump(mode="json", by_alias=True),
            )
        except Exception as err:  # noqa: BLE001 - sender already gone
            logger.debug("Could not report %s to socket %s: %s", code, socket.sid, err)
