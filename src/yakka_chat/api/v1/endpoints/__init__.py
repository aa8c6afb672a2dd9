# src/yakka_chat/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .chat_socket import router as chat_socket_router
from .chats import router as chats_router

__all__ = [
    "chats_router",
    "chat_socket_router",
]
