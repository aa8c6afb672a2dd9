"""Exception taxonomy shared by the chat core."""

from __future__ import annotations


class ChatError(RuntimeError):
    """Base exception for chat-related failures.

    Every subclass carries a short machine readable ``code`` that is safe to
    send to clients.
    """

    code = "chat_error"

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(message or self.code)


class AuthError(ChatError):
    """Raised when a bearer token is missing, invalid, expired or revoked."""

    code = "invalid_token"


class AuthorizationError(ChatError):
    """Raised when an authenticated user is not a participant of a chat."""

    code = "invalid_chat_id"


class CryptoError(ChatError):
    """Raised when wrapping, unwrapping, encrypting or decrypting fails."""

    code = "crypto_error"


class StorageError(ChatError):
    """Raised when an object storage upload or lookup fails."""

    code = "storage_error"


class NotFoundError(ChatError):
    """Raised when a required record does not exist."""

    code = "not_found"
