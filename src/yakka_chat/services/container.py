# src/yakka_chat/services/container.py
"""Construction of the long-lived chat services.

Every collaborator is built once at process start and handed to the
components that need it, so tests can swap any piece for a fake.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from yakka_chat.core.security import TokenVerifier
from yakka_chat.core.settings import settings
from yakka_chat.services.chat_gate import ChatSessionGate
from yakka_chat.services.chat_relay import ChatRelay
from yakka_chat.services.crypto import KeyVault, MessageCipher
from yakka_chat.services.moderation import ModerationSweep, ModerationSweepWorker
from yakka_chat.services.notifications import PushNotificationSender
from yakka_chat.services.rooms import RoomManager
from yakka_chat.services.storage import ObjectStorage


@dataclass
class ChatServices:
    session_factory: Callable[[], Session]
    verifier: TokenVerifier
    key_vault: KeyVault
    cipher: MessageCipher
    storage: ObjectStorage
    push_sender: PushNotificationSender
    rooms: RoomManager
    gate: ChatSessionGate
    relay: ChatRelay
    sweep: ModerationSweep
    sweep_worker: ModerationSweepWorker

    async def aclose(self) -> None:
        await self.sweep_worker.stop()
        await self.push_sender.close()


def build_services(
    *,
    session_factory: Callable[[], Session] | None = None,
    verifier: TokenVerifier | None = None,
    key_vault: KeyVault | None = None,
    storage: ObjectStorage | None = None,
    push_sender: PushNotificationSender | None = None,
    sweep_interval: float | None = None,
) -> ChatServices:
    """Wire up the chat services, defaulting each collaborator from settings."""
    if session_factory is None:
        from yakka_chat.db.session import SessionLocal

        session_factory = SessionLocal

    verifier = verifier or TokenVerifier()
    key_vault = key_vault or KeyVault(settings.master_key)
    cipher = MessageCipher()
    storage = storage or ObjectStorage()
    push_sender = push_sender or PushNotificationSender()
    rooms = RoomManager()

    sweep = ModerationSweep(session_factory, key_vault, cipher, push_sender)
    return ChatServices(
        session_factory=session_factory,
        verifier=verifier,
        key_vault=key_vault,
        cipher=cipher,
        storage=storage,
        push_sender=push_sender,
        rooms=rooms,
        gate=ChatSessionGate(verifier, key_vault, storage),
        relay=ChatRelay(session_factory, cipher, storage, push_sender, rooms),
        sweep=sweep,
        sweep_worker=ModerationSweepWorker(sweep, sweep_interval),
    )
