"""WebSocket temps réel pour la messagerie / Real-time WebSocket for chat.

Événements reçus / Incoming events : join_chats, send_message, mark_read, typing, stop_typing
Événements émis / Outgoing events : new_message, chat_notification, messages_read,
user_typing, user_stop_typing, error
"""

import json
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.database import async_session
from circulapp.models.chat import MessageType
from circulapp.models.user import User
from circulapp.schemas.chat import MessageRead
from circulapp.services import chat_service
from circulapp.utils.auth import decode_token

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatConnectionManager:
    """Gestionnaire de connexions par utilisateur et par salon / Connection manager per user and per room."""

    def __init__(self):
        self.user_connections: dict[int, list[WebSocket]] = {}
        self.rooms: dict[int, set[WebSocket]] = {}
        self.socket_users: dict[WebSocket, int] = {}

    async def connect(self, websocket: WebSocket, user_id: int):
        await websocket.accept()
        self.register(websocket, user_id)

    def register(self, websocket: WebSocket, user_id: int):
        self.user_connections.setdefault(user_id, []).append(websocket)
        self.socket_users[websocket] = user_id

    def disconnect(self, websocket: WebSocket):
        user_id = self.socket_users.pop(websocket, None)
        if user_id is not None:
            sockets = self.user_connections.get(user_id, [])
            if websocket in sockets:
                sockets.remove(websocket)
            if not sockets:
                self.user_connections.pop(user_id, None)
        for chat_id in list(self.rooms):
            members = self.rooms[chat_id]
            members.discard(websocket)
            if not members:
                del self.rooms[chat_id]

    def join(self, websocket: WebSocket, chat_id: int):
        self.rooms.setdefault(chat_id, set()).add(websocket)

    def is_online(self, user_id: int) -> bool:
        return bool(self.user_connections.get(user_id))

    async def _send(self, websocket: WebSocket, data: str) -> bool:
        try:
            await websocket.send_text(data)
            return True
        except Exception:
            logger.debug("Dropping dead websocket", exc_info=True)
            return False

    async def _send_many(self, sockets, message: dict):
        data = json.dumps(message, ensure_ascii=False)
        dead = [ws for ws in list(sockets) if not await self._send(ws, data)]
        for ws in dead:
            self.disconnect(ws)

    async def send_to_chat(self, chat_id: int, message: dict, exclude: WebSocket | None = None):
        """Envoyer à un salon / Send to a room."""
        sockets = [ws for ws in self.rooms.get(chat_id, set()) if ws is not exclude]
        await self._send_many(sockets, message)

    async def send_to_user(self, user_id: int, message: dict):
        await self._send_many(self.user_connections.get(user_id, []), message)

    async def send_personal(self, websocket: WebSocket, message: dict):
        await websocket.send_text(json.dumps(message, ensure_ascii=False))


# Singleton global / Global singleton
manager = ChatConnectionManager()


async def _error(websocket: WebSocket, message: str):
    await manager.send_personal(websocket, {"type": "error", "message": message})


async def handle_event(db: AsyncSession, user: User, websocket: WebSocket, event: dict):
    """Traiter un événement client / Handle a client event."""
    event_type = event.get("type")

    if event_type == "join_chats":
        chat_ids = await chat_service.user_chat_ids(db, user.id)
        for chat_id in chat_ids:
            manager.join(websocket, chat_id)
        await manager.send_personal(websocket, {"type": "joined_chats", "chat_ids": chat_ids})
        return

    chat_id = event.get("chat_id")
    if not isinstance(chat_id, int):
        await _error(websocket, "chat_id is required")
        return
    chat = await chat_service.load_chat_for_user(db, chat_id, user.id)
    if chat is None:
        await _error(websocket, "Chat not found")
        return

    if event_type == "send_message":
        content = (event.get("content") or "").strip()
        if not content or len(content) > 1000:
            await _error(websocket, "Message content must be 1-1000 characters")
            return
        try:
            message_type = MessageType(event.get("message_type", "text"))
        except ValueError:
            await _error(websocket, "Invalid message type")
            return

        message = await chat_service.add_message(db, chat, user.id, content, message_type)
        await db.commit()
        payload = MessageRead.model_validate(message).model_dump(mode="json")
        manager.join(websocket, chat_id)
        await manager.send_to_chat(chat_id, {"type": "new_message", "message": payload})

        # Notifier les participants absents du salon / Notify participants not in the room
        room = manager.rooms.get(chat_id, set())
        for participant_id in chat.participant_ids:
            if participant_id == user.id:
                continue
            sockets = manager.user_connections.get(participant_id, [])
            if sockets and not any(ws in room for ws in sockets):
                await manager.send_to_user(participant_id, {
                    "type": "chat_notification",
                    "chat_id": chat_id,
                    "sender": {"id": user.id, "name": user.name},
                    "preview": content[:100],
                })

    elif event_type == "mark_read":
        count = await chat_service.mark_read(db, chat_id, user.id)
        await db.commit()
        await manager.send_to_chat(
            chat_id, {"type": "messages_read", "chat_id": chat_id, "reader_id": user.id, "count": count},
            exclude=websocket,
        )

    elif event_type in ("typing", "stop_typing"):
        out_type = "user_typing" if event_type == "typing" else "user_stop_typing"
        await manager.send_to_chat(
            chat_id, {"type": out_type, "chat_id": chat_id, "user_id": user.id, "name": user.name},
            exclude=websocket,
        )

    else:
        await _error(websocket, f"Unknown event type: {event_type}")


@router.websocket("/ws/chat")
async def websocket_chat(
    websocket: WebSocket,
    token: str = Query(default=""),
):
    """Connexion WebSocket authentifiée / Authenticated WebSocket connection."""
    # Authentification JWT / JWT authentication
    payload = decode_token(token) if token else None
    if payload is None or payload.get("type") != "access":
        await websocket.close(code=4001, reason="Invalid token")
        return

    async with async_session() as db:
        result = await db.execute(select(User).where(User.id == int(payload["sub"])))
        user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        await websocket.close(code=4001, reason="User not found or inactive")
        return

    await manager.connect(websocket, user.id)
    logger.info("Chat socket connected for user %s", user.id)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                event = json.loads(raw)
            except json.JSONDecodeError:
                await _error(websocket, "Invalid JSON")
                continue
            if not isinstance(event, dict):
                await _error(websocket, "Event must be an object")
                continue
            async with async_session() as db:
                await handle_event(db, user, websocket, event)
    except WebSocketDisconnect:
        manager.disconnect(websocket)
        logger.info("Chat socket closed for user %s", user.id)
