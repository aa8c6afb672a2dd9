# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterable, Iterator
from typing import Any
from unittest.mock import MagicMock

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("KEY_ENCRYPTION_KEY", "0123456789abcdef" * 4)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MODERATION_SWEEP_ENABLED", "false")

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from yakka_chat.core.security import create_access_token
from yakka_chat.core.settings import settings
from yakka_chat.db.session import Base
from yakka_chat.main import app as fastapi_app
from yakka_chat.models import Chat, User, UserSession
from yakka_chat.repositories import ChatRepository
from yakka_chat.services.container import ChatServices, build_services
from yakka_chat.services.crypto import KeyVault
from yakka_chat.services.notifications import PushMessage, PushNotificationSender
from yakka_chat.services.storage import ObjectStorage

TEST_DB_URL = "sqlite://"
SIGNED_URL_PREFIX = "https://signed.test"


class RecordingPushSender(PushNotificationSender):
    """Push sender that keeps every message instead of calling Expo."""

    def __init__(self) -> None:
        super().__init__(push_url="https://push.test/send", access_token="")
        self.sent: list[PushMessage] = []

    async def send(self, messages: Iterable[PushMessage]) -> int:
        batch = list(messages)
        self.sent.extend(batch)
        return len(batch)


class FakeSocket:
    """Stand-in for a connected client that records emitted events."""

    def __init__(self, sid: str) -> None:
        self.sid = sid
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def emit(self, event: str, data: dict[str, Any]) -> None:
        self.events.append((event, data))

    def named(self, event: str) -> list[dict[str, Any]]:
        return [data for name, data in self.events if name == event]


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def key_vault() -> KeyVault:
    return KeyVault(settings.master_key)


@pytest.fixture()
def s3_client() -> MagicMock:
    client = MagicMock(name="s3")
    client.generate_presigned_url.side_effect = (
        lambda _op, Params, ExpiresIn: f"{SIGNED_URL_PREFIX}/{Params['Key']}?expires={ExpiresIn}"
    )
    return client


@pytest.fixture()
def storage(s3_client: MagicMock) -> ObjectStorage:
    return ObjectStorage(client=s3_client, bucket="test-bucket", presign_expires_seconds=3600)


@pytest.fixture()
def push_sender() -> RecordingPushSender:
    return RecordingPushSender()


@pytest.fixture()
def services(
    session_factory: sessionmaker[Session],
    key_vault: KeyVault,
    storage: ObjectStorage,
    push_sender: RecordingPushSender,
) -> ChatServices:
    return build_services(
        session_factory=session_factory,
        key_vault=key_vault,
        storage=storage,
        push_sender=push_sender,
        sweep_interval=0.1,
    )


@pytest.fixture()
def app(services: ChatServices) -> Iterator[FastAPI]:
    fastapi_app.state.services = services
    try:
        yield fastapi_app
    finally:
        del fastapi_app.state.services


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Create a user with one live login session."""

    def _make_user(
        first_name: str | None = "Alice",
        *,
        last_name: str | None = "Tester",
        push_token: str | None = "ExponentPushToken[test-token]",
        image_name: str | None = None,
    ) -> User:
        user = User(
            first_name=first_name,
            last_name=last_name,
            push_notification_token=push_token,
            image_name=image_name,
        )
        user.sessions = [UserSession()]
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def token_for() -> Callable[[User], str]:
    def _token_for(user: User) -> str:
        return create_access_token(user.id, user.sessions[0].id)

    return _token_for


@pytest.fixture()
def auth_headers(token_for: Callable[[User], str]) -> Callable[[User], dict[str, str]]:
    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _auth_headers


@pytest.fixture()
def socket_factory() -> Callable[[str], FakeSocket]:
    return FakeSocket


@pytest.fixture()
def alice(make_user: Callable[..., User]) -> User:
    return make_user("Alice", push_token="ExponentPushToken[alice]", image_name="alice.jpeg")


@pytest.fixture()
def bob(make_user: Callable[..., User]) -> User:
    return make_user("Bob", last_name="Builder", push_token="ExponentPushToken[bob]")


@pytest.fixture()
def chat(db_session: Session, key_vault: KeyVault, alice: User, bob: User) -> Chat:
    return ChatRepository(db_session).create_chat(alice.id, bob.id, key_vault.create_wrapped_key())
