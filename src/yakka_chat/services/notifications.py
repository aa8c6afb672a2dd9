"""Push notification delivery through the Expo push service."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import httpx

from yakka_chat.core.settings import settings

logger = logging.getLogger(__name__)

# Expo accepts at most 100 messages per request.
EXPO_CHUNK_SIZE = 100

_EXPO_TOKEN_PATTERN = re.compile(r"^(ExponentPushToken|ExpoPushToken)\[[^\]]+\]$")


def is_expo_push_token(token: str | None) -> bool:
    """Return True if ``token`` looks like an Expo push token."""
    return bool(token) and bool(_EXPO_TOKEN_PATTERN.match(token))  # type: ignore[arg-type]


@dataclass(frozen=True)
class PushMessage:
    """A single notification addressed to one device token."""

    token: str | None
    body: str
    title: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_expo(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"to": self.token, "sound": "default", "body": self.body}
        if self.title is not None:
            payload["title"] = self.title
        if self.data:
            payload["data"] = self.data
        return payload


class PushNotificationSender:
    """Best-effort push sender; failures are logged and never raised."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        push_url: str | None = None,
        access_token: str | None = None,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self.push_url = push_url or settings.expo_push_url
        self._access_token = access_token if access_token is not None else settings.expo_access_token

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json", "Content-Type": "application/json"}
            if self._access_token:
                headers["Authorization"] = f"Bearer {self._access_token}"
            self._client = httpx.AsyncClient(
                timeout=settings.push_http_timeout_seconds,
                headers=headers,
            )
        return self._client

    async def send(self, messages: Iterable[PushMessage]) -> int:
        """Send notifications, returning how many were accepted for delivery."""
        valid: list[PushMessage] = []
        for message in messages:
            if not is_expo_push_token(message.token):
                logger.info("Skipping push with invalid Expo token %r", message.token)
                continue
            valid.append(message)

        delivered = 0
        for start in range(0, len(valid), EXPO_CHUNK_SIZE):
            chunk = valid[start:start + EXPO_CHUNK_SIZE]
            try:
                response = await self._get_client().post(
                    self.push_url,
                    json=[message.to_expo() for message in chunk],
                )
                response.raise_for_status()
            except httpx.HTTPError as err:
                logger.warning("Push notification chunk failed: %s", err)
                continue
            delivered += len(chunk)
        return delivered

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
