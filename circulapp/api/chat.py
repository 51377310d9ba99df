"""Routes Messagerie / Chat API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.api.deps import get_current_user
from circulapp.api.ws_chat import manager
from circulapp.database import get_db
from circulapp.models.chat import Chat, Message, chat_participants
from circulapp.models.product import Product
from circulapp.models.user import User
from circulapp.schemas.chat import ChatRead, ChatStart, MessageCreate, MessageRead
from circulapp.services import chat_service

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_chat(db: AsyncSession, chat_id: int) -> Chat:
    result = await db.execute(select(Chat).where(Chat.id == chat_id).execution_options(populate_existing=True))
    return result.scalar_one()


async def _participant_chat(db: AsyncSession, chat_id: int, user: User) -> Chat:
    chat = await chat_service.load_chat_for_user(db, chat_id, user.id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return chat


@router.get("/", response_model=list[ChatRead])
async def list_chats(db: AsyncSession = Depends(get_db), user: User = Depends(get_current_user)):
    """Conversations actives triées par dernier message / Active chats sorted by last message."""
    result = await db.execute(
        select(Chat)
        .join(chat_participants, chat_participants.c.chat_id == Chat.id)
        .where(chat_participants.c.user_id == user.id, Chat.is_active.is_(True))
        .order_by(func.coalesce(Chat.last_message_at, Chat.created_at).desc())
    )
    return result.scalars().all()


@router.post("/start", response_model=ChatRead, status_code=201)
async def start_chat(
    data: ChatStart,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Démarrer ou reprendre une conversation sur un produit / Start or resume a chat about a product."""
    product = await db.get(Product, data.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.owner_id == user.id:
        raise HTTPException(status_code=400, detail="Cannot start a chat with yourself")

    # Réutiliser la conversation existante / Reuse the existing chat
    result = await db.execute(
        select(Chat)
        .join(chat_participants, chat_participants.c.chat_id == Chat.id)
        .where(Chat.product_id == product.id, chat_participants.c.user_id == user.id, Chat.is_active.is_(True))
    )
    chat = next((c for c in result.scalars().all() if product.owner_id in c.participant_ids), None)

    if chat is None:
        chat = Chat(product_id=product.id, participants=[user, product.owner])
        db.add(chat)
        await db.flush()
        logger.info("Chat %s opened by user %s on product %s", chat.id, user.id, product.id)

    await chat_service.add_message(db, chat, user.id, data.message)
    return await _load_chat(db, chat.id)


@router.get("/{chat_id}/messages", response_model=list[MessageRead])
async def list_messages(
    chat_id: int,
    limit: int = Query(default=50, ge=1, le=200),
    before_id: int | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Messages d'une conversation, marque lus ceux des autres / Chat messages, marks others' as read."""
    await _participant_chat(db, chat_id, user)

    query = select(Message).where(Message.chat_id == chat_id)
    if before_id is not None:
        query = query.where(Message.id < before_id)
    result = await db.execute(query.order_by(Message.id.desc()).limit(limit))
    messages = list(reversed(result.scalars().all()))

    await chat_service.mark_read(db, chat_id, user.id)
    for message in messages:
        if message.sender_id != user.id:
            message.is_read = True
    return messages


@router.post("/{chat_id}/messages", response_model=MessageRead, status_code=201)
async def send_message(
    chat_id: int,
    data: MessageCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Envoyer un message / Send a message."""
    chat = await _participant_chat(db, chat_id, user)
    message = await chat_service.add_message(db, chat, user.id, data.content, data.message_type)

    # Diffusion temps réel aux autres participants / Real-time push to other participants
    payload = MessageRead.model_validate(message).model_dump(mode="json")
    await manager.send_to_chat(chat_id, {"type": "new_message", "message": payload})
    return message
