"""Chat-related Pydantic schemas for REST responses and socket payloads."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from yakka_chat.models import MessageType


class CamelModel(BaseModel):
    """Base model emitting camelCase keys to match the mobile client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PrivateMessageIn(CamelModel):
    """Payload of a client ``private_message`` event."""

    content: str = Field(..., min_length=1, description="Plain text, or base64 media for IMAGE/AUDIO")
    type: MessageType = MessageType.TEXT
    id: str | None = Field(None, description="Optional client correlation id")


class RelayedMessage(CamelModel):
    """Payload forwarded to the other participant."""

    content: str
    sender_id: int
    type: MessageType
    media_url: str | None = None
    sent_at: str
    id: str | None = None


class MessageSentAck(CamelModel):
    """Acknowledgement sent back to the sender after a message is stored."""

    id: str | None = None
    message_id: int
    sent_at: str


class MessageError(CamelModel):
    """Error reported to the sender when an event could not be handled."""

    error: str
    id: str | None = None


class CreateChatResponse(CamelModel):
    """Schema for the create-or-get chat endpoint."""

    chat_id: str


class ChatMessageResponse(CamelModel):
    """A message as returned by the chat history endpoints."""

    id: int
    content: str
    sender_id: int
    type: MessageType
    media_url: str | None
    sent_at: datetime


class ChatPageResponse(CamelModel):
    """One page of chat history."""

    messages: list[ChatMessageResponse]
    next_page: int | None


class BasicProfile(CamelModel):
    """Public profile fields of a chat participant."""

    id: int
    first_name: str | None
    last_name: str | None
    image: str | None


class LastMessageResponse(ChatMessageResponse):
    """Most recent message of a chat with a display name for its sender."""

    sender_name: str | None


class ChatSummaryResponse(CamelModel):
    """Entry of the chat list."""

    id: str
    recipient: BasicProfile
    last_message: LastMessageResponse
    has_unread_messages: bool


class ChatListResponse(CamelModel):
    """Paginated chat list for the current user."""

    chats: list[ChatSummaryResponse]
    has_unread_messages: bool
    next_page: int | None


class DefaultResponse(BaseModel):
    """Plain message response."""

    message: str
