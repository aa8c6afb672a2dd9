"""Tests for Expo push delivery."""

import json

import httpx
import pytest

from yakka_chat.services.notifications import (
    EXPO_CHUNK_SIZE,
    PushMessage,
    PushNotificationSender,
    is_expo_push_token,
)


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("ExponentPushToken[abc123]", True),
        ("ExpoPushToken[abc123]", True),
        ("ExponentPushToken[]", False),
        ("abc123", False),
        ("", False),
        (None, False),
    ],
)
def test_is_expo_push_token(token, expected) -> None:
    assert is_expo_push_token(token) is expected


def test_to_expo_payload() -> None:
    message = PushMessage(token="ExponentPushToken[a]", title="Hi", body="Body", data={"k": 1})
    assert message.to_expo() == {
        "to": "ExponentPushToken[a]",
        "sound": "default",
        "title": "Hi",
        "body": "Body",
        "data": {"k": 1},
    }
    assert "title" not in PushMessage(token="t", body="b").to_expo()


def _sender(handler) -> tuple[PushNotificationSender, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PushNotificationSender(client=client, push_url="https://push.test/send"), client


@pytest.mark.asyncio
async def test_send_skips_invalid_tokens_and_chunks() -> None:
    batches: list[list[dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        batches.append(json.loads(request.content))
        return httpx.Response(200, json={"data": []})

    sender, client = _sender(handler)
    messages = [PushMessage(token=f"ExponentPushToken[{i}]", body="hi") for i in range(EXPO_CHUNK_SIZE + 5)]
    messages.append(PushMessage(token="not-a-token", body="hi"))
    messages.append(PushMessage(token=None, body="hi"))

    delivered = await sender.send(messages)
    await client.aclose()

    assert delivered == EXPO_CHUNK_SIZE + 5
    assert [len(batch) for batch in batches] == [EXPO_CHUNK_SIZE, 5]


@pytest.mark.asyncio
async def test_send_swallows_http_errors() -> None:
    sender, client = _sender(lambda request: httpx.Response(500))

    delivered = await sender.send([PushMessage(token="ExponentPushToken[x]", body="hi")])
    await client.aclose()

    assert delivered == 0


@pytest.mark.asyncio
async def test_send_with_nothing_valid_makes_no_request() -> None:
    calls = []
    sender, client = _sender(lambda request: calls.append(request) or httpx.Response(200))

    assert await sender.send([PushMessage(token="nope", body="hi")]) == 0
    await client.aclose()
    assert calls == []


@pytest.mark.asyncio
async def test_close_leaves_injected_client_open() -> None:
    sender, client = _sender(lambda request: httpx.Response(200))
    await sender.close()
    assert not client.is_closed
    await client.aclose()
