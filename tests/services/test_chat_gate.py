"""Tests for the two-stage chat socket handshake."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from yakka_chat.core.errors import AuthError, AuthorizationError, CryptoError
from yakka_chat.core.security import create_access_token
from yakka_chat.models import BannedUser, Chat, UserChat, UserSession
from yakka_chat.services.chat_gate import ChatSessionGate


def test_open_session_builds_context(services, db_session, chat, alice, bob, token_for, key_vault) -> None:
    ctx = services.gate.open_session(token_for(alice), chat.id, db_session)

    assert ctx.chat_id == chat.id
    assert ctx.session_id == alice.sessions[0].id
    assert ctx.sender.id == alice.id
    assert ctx.sender.first_name == "Alice"
    assert ctx.sender.push_token == "ExponentPushToken[alice]"
    assert ctx.sender.image.endswith(f"/users/{alice.id}/alice.jpeg")
    assert ctx.recipient.id == bob.id
    assert ctx.recipient.first_name == "Bob"
    assert ctx.recipient.push_token == "ExponentPushToken[bob]"
    assert ctx.data_key == key_vault.unwrap(chat.data_key)


def test_context_repr_hides_data_key(services, db_session, chat, alice, token_for) -> None:
    ctx = services.gate.open_session(token_for(alice), chat.id, db_session)
    assert ctx.data_key.hex() not in repr(ctx)
    assert "data_key" not in repr(ctx)


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_invalid_token_is_rejected(services, db_session, chat, token) -> None:
    with pytest.raises(AuthError) as exc_info:
        services.gate.open_session(token, chat.id, db_session)
    assert exc_info.value.code == "invalid_token"


def test_expired_token_is_rejected(services, db_session, chat, alice) -> None:
    token = create_access_token(
        alice.id, alice.sessions[0].id, expires_delta=timedelta(seconds=-5)
    )
    with pytest.raises(AuthError):
        services.gate.open_session(token, chat.id, db_session)


def test_token_for_revoked_session_is_rejected(services, db_session, chat, alice, token_for) -> None:
    token = token_for(alice)
    db_session.query(UserSession).filter(UserSession.user_id == alice.id).delete()
    db_session.commit()

    with pytest.raises(AuthError):
        services.gate.open_session(token, chat.id, db_session)


def test_banned_user_is_rejected(services, db_session, chat, alice, token_for) -> None:
    db_session.add(BannedUser(user_id=alice.id, reason="test"))
    db_session.commit()

    with pytest.raises(AuthError):
        services.gate.open_session(token_for(alice), chat.id, db_session)


def test_non_member_gets_invalid_chat_id(services, db_session, chat, make_user, token_for) -> None:
    carol = make_user("Carol")
    with pytest.raises(AuthorizationError) as exc_info:
        services.gate.open_session(token_for(carol), chat.id, db_session)
    assert exc_info.value.code == "invalid_chat_id"


@pytest.mark.parametrize("chat_id", [None, "", "does-not-exist"])
def test_missing_or_unknown_chat_is_rejected(services, db_session, alice, token_for, chat_id) -> None:
    with pytest.raises(AuthorizationError):
        services.gate.open_session(token_for(alice), chat_id, db_session)


def test_chat_without_second_member_is_rejected(services, db_session, alice, key_vault, token_for) -> None:
    lonely = Chat(data_key=key_vault.create_wrapped_key())
    lonely.members = [UserChat(user_id=alice.id, has_unread_messages=False)]
    db_session.add(lonely)
    db_session.commit()

    with pytest.raises(AuthorizationError):
        services.gate.open_session(token_for(alice), lonely.id, db_session)


def test_unauthenticated_caller_never_reaches_authorization(db_session, storage) -> None:
    verifier = MagicMock()
    verifier.verify.side_effect = AuthError("bad token")
    vault = MagicMock()
    gate = ChatSessionGate(verifier, vault, storage)
    gate.authorize = MagicMock()

    with pytest.raises(AuthError):
        gate.open_session("bad", "some-chat", db_session)

    gate.authorize.assert_not_called()
    vault.unwrap.assert_not_called()


def test_corrupt_wrapped_key_surfaces_crypto_error(services, db_session, chat, alice, token_for) -> None:
    chat.data_key = "v2:00:00"
    db_session.commit()

    with pytest.raises(CryptoError):
        services.gate.open_session(token_for(alice), chat.id, db_session)
