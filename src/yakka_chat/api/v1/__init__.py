# src/yakka_chat/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import chat_socket_router, chats_router

__all__ = [
    "chats_router",
    "chat_socket_router",
]
