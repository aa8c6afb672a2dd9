"""S3-backed storage for chat media payloads."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
import secrets
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from yakka_chat.core.errors import StorageError
from yakka_chat.core.settings import settings

logger = logging.getLogger(__name__)

_DATA_URI_PREFIX = re.compile(r"^data:[^;,]*;base64,")


def chat_images_path(chat_id: str) -> str:
    return f"chats/{chat_id}/images"


def chat_audio_path(chat_id: str) -> str:
    return f"chats/{chat_id}/audio"


def user_images_path(user_id: int) -> str:
    return f"users/{user_id}"


def decode_base64_payload(payload: str) -> bytes:
    """Decode a base64 media payload, tolerating a ``data:...;base64,`` prefix."""
    stripped = _DATA_URI_PREFIX.sub("", payload.strip())
    try:
        return base64.b64decode(stripped, validate=True)
    except (binascii.Error, ValueError) as err:
        raise StorageError("Media payload must be valid base64", code="invalid_media") from err


@dataclass(frozen=True)
class StoredObject:
    """Reference to an uploaded object."""

    path: str
    file_name: str

    @property
    def key(self) -> str:
        return f"{self.path}/{self.file_name}"


class ObjectStorage:
    """Uploads media and issues short-lived presigned retrieval URLs."""

    def __init__(
        self,
        client: Any | None = None,
        bucket: str | None = None,
        presign_expires_seconds: int | None = None,
    ) -> None:
        self._client = client or boto3.client(
            "s3",
            region_name=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
        )
        self.bucket = bucket or settings.s3_bucket_name
        self.presign_expires_seconds = presign_expires_seconds or settings.s3_presign_expires_seconds

    async def upload(
        self,
        data: bytes,
        path: str,
        *,
        extension: str,
        content_type: str,
    ) -> StoredObject:
        """Store ``data`` under ``path`` with a random filename.

        Raises:
            StorageError: If the upload fails.
        """
        stored = StoredObject(path=path, file_name=f"{secrets.token_urlsafe(16)}.{extension}")
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=stored.key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as err:
            logger.warning("Upload to %s failed: %s", stored.key, err)
            raise StorageError("Failed to upload media") from err
        logger.debug("Uploaded %d bytes to %s", len(data), stored.key)
        return stored

    async def presigned_get(self, file_name: str, path: str) -> str:
        """Return a time-limited GET URL for a stored object."""
        try:
            url: str = await asyncio.to_thread(
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": f"{path}/{file_name}"},
                ExpiresIn=self.presign_expires_seconds,
            )
        except (BotoCoreError, ClientError) as err:
            raise StorageError("Failed to presign media URL") from err
        return url

    def public_url(self, file_name: str | None, path: str) -> str | None:
        """Return the unsigned object URL, used for profile avatars."""
        if not file_name:
            return None
        return f"https://{self.bucket}.s3.{settings.s3_region}.amazonaws.com/{path}/{file_name}"
