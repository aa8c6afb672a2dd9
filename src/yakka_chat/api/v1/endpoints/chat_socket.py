# src/yakka_chat/api/v1/endpoints/chat_socket.py
"""Realtime chat websocket.

Clients connect to ``/api/v1/chat/ws?token=...&chatId=...`` and exchange JSON
frames shaped ``{"event": <name>, "data": {...}}``.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from yakka_chat.core.errors import AuthError, AuthorizationError, ChatError
from yakka_chat.services.chat_relay import MESSAGE_ERROR
from yakka_chat.services.container import ChatServices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

# Application-range close codes mirroring HTTP 401/403.
CLOSE_INVALID_TOKEN = 4401
CLOSE_INVALID_CHAT_ID = 4403


class WebSocketConnection:
    """Adapts a Starlette websocket to the relay's socket interface."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self.sid = uuid.uuid4().hex

    async def emit(self, event: str, data: dict[str, Any]) -> None:
        await self.websocket.send_json({"event": event, "data": data})


def _parse_frame(raw: str | None) -> tuple[str, dict[str, Any] | None] | None:
    if raw is None:
        return None
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        return None
    data = frame.get("data")
    if data is not None and not isinstance(data, dict):
        return None
    return frame["event"], data


@router.websocket("/ws")
async def chat_websocket(websocket: WebSocket) -> None:
    services: ChatServices = websocket.app.state.services
    token = websocket.query_params.get("token")
    chat_id = websocket.query_params.get("chatId")

    await websocket.accept()

    try:
        with services.session_factory() as db:
            ctx = services.gate.open_session(token, chat_id, db)
    except AuthError as err:
        logger.info("Rejected chat socket: %s", err)
        await websocket.close(code=CLOSE_INVALID_TOKEN, reason=err.code)
        return
    except ChatError as err:
        # Anything past stage 1, including a key that will not unwrap, is an unusable chat.
        logger.info("Rejected chat socket for chat %s: %s", chat_id, err)
        await websocket.close(code=CLOSE_INVALID_CHAT_ID, reason=AuthorizationError.code)
        return

    connection = WebSocketConnection(websocket)
    services.relay.connect(connection, ctx)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            # Binary frames carry no "text" and are rejected like malformed JSON.
            parsed = _parse_frame(message.get("text"))
            if parsed is None:
                await connection.emit(MESSAGE_ERROR, {"error": "invalid_payload", "id": None})
                continue
            event, data = parsed
            await services.relay.dispatch(connection, ctx, event, data)
    except WebSocketDisconnect:
        logger.debug("Chat socket %s disconnected", connection.sid)
    finally:
        services.relay.disconnect(connection, ctx)
