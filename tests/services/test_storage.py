"""Tests for the S3 media storage wrapper."""

import base64
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from yakka_chat.core.errors import StorageError
from yakka_chat.services.storage import (
    ObjectStorage,
    chat_audio_path,
    chat_images_path,
    decode_base64_payload,
    user_images_path,
)


def test_paths() -> None:
    assert chat_images_path("abc") == "chats/abc/images"
    assert chat_audio_path("abc") == "chats/abc/audio"
    assert user_images_path(7) == "users/7"


def test_decode_base64_payload_accepts_data_uri() -> None:
    raw = b"\x00\x01binary"
    encoded = base64.b64encode(raw).decode()
    assert decode_base64_payload(encoded) == raw
    assert decode_base64_payload(f"data:image/jpeg;base64,{encoded}") == raw


def test_decode_base64_payload_rejects_garbage() -> None:
    with pytest.raises(StorageError) as exc_info:
        decode_base64_payload("not base64 !!")
    assert exc_info.value.code == "invalid_media"


@pytest.mark.asyncio
async def test_upload_uses_random_name_under_path(storage, s3_client) -> None:
    first = await storage.upload(b"one", "chats/c1/images", extension="jpeg", content_type="image/jpeg")
    second = await storage.upload(b"two", "chats/c1/images", extension="jpeg", content_type="image/jpeg")

    assert first.file_name != second.file_name
    assert first.file_name.endswith(".jpeg")
    assert first.key == f"chats/c1/images/{first.file_name}"
    s3_client.put_object.assert_any_call(
        Bucket="test-bucket",
        Key=first.key,
        Body=b"one",
        ContentType="image/jpeg",
    )


@pytest.mark.asyncio
async def test_upload_failure_raises_storage_error() -> None:
    client = MagicMock()
    client.put_object.side_effect = ClientError({"Error": {"Code": "500", "Message": "down"}}, "PutObject")
    storage = ObjectStorage(client=client, bucket="b")

    with pytest.raises(StorageError):
        await storage.upload(b"x", "chats/c/audio", extension="m4a", content_type="audio/m4a")


@pytest.mark.asyncio
async def test_presigned_get_passes_expiry(storage, s3_client) -> None:
    url = await storage.presigned_get("file.jpeg", "chats/c1/images")

    assert url == "https://signed.test/chats/c1/images/file.jpeg?expires=3600"
    s3_client.generate_presigned_url.assert_called_once_with(
        "get_object",
        Params={"Bucket": "test-bucket", "Key": "chats/c1/images/file.jpeg"},
        ExpiresIn=3600,
    )


def test_public_url(storage) -> None:
    assert storage.public_url(None, "users/1") is None
    assert storage.public_url("me.jpeg", "users/1").endswith("/users/1/me.jpeg")
