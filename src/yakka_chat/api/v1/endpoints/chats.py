# src/yakka_chat/api/v1/endpoints/chats.py
"""Chat endpoints for the Yakka API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, Response, status

from yakka_chat.api.v1.dependencies import CurrentUserDep, ServicesDep, SessionDep
from yakka_chat.core.errors import ChatError, CryptoError
from yakka_chat.models import Chat, Message, MessageType
from yakka_chat.repositories import ChatRepository
from yakka_chat.schemas.chat import (
    BasicProfile,
    ChatListResponse,
    ChatMessageResponse,
    ChatPageResponse,
    ChatSummaryResponse,
    CreateChatResponse,
    DefaultResponse,
    LastMessageResponse,
)
from yakka_chat.services.container import ChatServices
from yakka_chat.services.storage import chat_audio_path, chat_images_path, user_images_path

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chats", tags=["chats"])

DEFAULT_PAGE_SIZE = 12
UNREADABLE_MESSAGE_TEXT = "This message could not be decrypted"


async def _format_messages(
    services: ChatServices,
    chat: Chat,
    messages: list[Message],
    key: bytes,
) -> list[ChatMessageResponse]:
    """Decrypt TEXT content and presign media references for display.

    A TEXT row that fails to decrypt is shown with placeholder content so the
    rest of the page still renders.
    """
    formatted = []
    for message in messages:
        media_url = None
        if message.type is MessageType.TEXT:
            try:
                content = services.cipher.decrypt(message.content, key)
            except CryptoError as err:
                logger.warning("Could not decrypt message %s of chat %s: %s", message.id, chat.id, err)
                content = UNREADABLE_MESSAGE_TEXT
        else:
            content = message.content
            if message.media_url:
                path = (
                    chat_images_path(chat.id)
                    if message.type is MessageType.IMAGE
                    else chat_audio_path(chat.id)
                )
                media_url = await services.storage.presigned_get(message.media_url, path)
        formatted.append(
            ChatMessageResponse(
                id=message.id,
                content=content,
                sender_id=message.sender_id,
                type=message.type,
                media_url=media_url,
                sent_at=message.created_at,
            )
        )
    return formatted


@router.post("/{user_id}", response_model=CreateChatResponse)
async def create_chat(
    user_id: int,
    response: Response,
    current_user: CurrentUserDep,
    services: ServicesDep,
    db: SessionDep,
) -> CreateChatResponse:
    """Return the chat shared with ``user_id``, creating it if needed."""
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot create a chat with yourself",
        )

    repo = ChatRepository(db)
    if repo.get_user(user_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    existing = repo.find_chat_between(current_user.id, user_id)
    if existing is not None:
        return CreateChatResponse(chat_id=existing.id)

    chat = repo.create_chat(current_user.id, user_id, services.key_vault.create_wrapped_key())
    logger.info("Created chat %s between users %s and %s", chat.id, current_user.id, user_id)
    response.status_code = status.HTTP_201_CREATED
    return CreateChatResponse(chat_id=chat.id)


@router.get("/{chat_id}", response_model=ChatPageResponse)
async def get_chat(
    chat_id: str,
    current_user: CurrentUserDep,
    services: ServicesDep,
    db: SessionDep,
    page: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
) -> ChatPageResponse:
    """Return one page of a chat's history, newest first."""
    repo = ChatRepository(db)
    membership = repo.get_membership(current_user.id, chat_id)
    if membership is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this chat",
        )

    messages = repo.list_messages(chat_id, page=page, limit=limit)
    try:
        key = services.key_vault.unwrap(membership.chat.data_key)
        formatted = await _format_messages(services, membership.chat, messages, key)
    except ChatError as err:
        logger.error("Could not load messages of chat %s: %s", chat_id, err)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not load chat messages",
        ) from err
    return ChatPageResponse(
        messages=formatted,
        next_page=page + 1 if len(messages) == limit else None,
    )


@router.get("/", response_model=ChatListResponse)
async def list_chats(
    current_user: CurrentUserDep,
    services: ServicesDep,
    db: SessionDep,
    page: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
) -> ChatListResponse:
    """List the caller's chats that contain at least one message."""
    repo = ChatRepository(db)
    chats = repo.list_chats_for_user(current_user.id, page=page, limit=limit)
    unread = repo.unread_flags(current_user.id, [chat.id for chat in chats])

    summaries: list[ChatSummaryResponse] = []
    for chat in chats:
        other = next(
            (user for user in repo.get_participants(chat.id) if user.id != current_user.id),
            None,
        )
        if other is None:
            continue

        try:
            key = services.key_vault.unwrap(chat.data_key)
            latest = await _format_messages(services, chat, repo.latest_messages(chat.id), key)
        except ChatError as err:
            logger.error("Leaving chat %s out of the chat list: %s", chat.id, err)
            continue
        if not latest:
            continue
        last = latest[0]
        summaries.append(
            ChatSummaryResponse(
                id=chat.id,
                recipient=BasicProfile(
                    id=other.id,
                    first_name=other.first_name,
                    last_name=other.last_name,
                    image=services.storage.public_url(other.image_name, user_images_path(other.id)),
                ),
                last_message=LastMessageResponse(
                    **last.model_dump(),
                    sender_name="You" if last.sender_id == current_user.id else other.first_name,
                ),
                has_unread_messages=unread.get(chat.id, False),
            )
        )

    return ChatListResponse(
        chats=summaries,
        has_unread_messages=any(summary.has_unread_messages for summary in summaries),
        next_page=page + 1 if len(chats) == limit else None,
    )


@router.put("/{chat_id}/read", response_model=DefaultResponse)
async def mark_chat_as_read(
    chat_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> DefaultResponse:
    """Clear the caller's unread flag for a chat."""
    repo = ChatRepository(db)
    if repo.get_membership(current_user.id, chat_id) is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this chat",
        )
    repo.set_unread(chat_id, current_user.id, False)
    return DefaultResponse(message="Chat marked as read")
