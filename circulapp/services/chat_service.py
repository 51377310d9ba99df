"""
Service de messagerie / Messaging service.
Partagé par l'API REST et le WebSocket / Shared by the REST API and the WebSocket.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.models.chat import Chat, Message, MessageType, chat_participants
from circulapp.utils.dates import utcnow


async def load_chat_for_user(db: AsyncSession, chat_id: int, user_id: int) -> Chat | None:
    """Conversation si l'utilisateur y participe / Chat if the user takes part in it."""
    result = await db.execute(
        select(Chat)
        .join(chat_participants, chat_participants.c.chat_id == Chat.id)
        .where(Chat.id == chat_id, chat_participants.c.user_id == user_id, Chat.is_active.is_(True))
    )
    return result.scalar_one_or_none()


async def user_chat_ids(db: AsyncSession, user_id: int) -> list[int]:
    result = await db.execute(
        select(Chat.id)
        .join(chat_participants, chat_participants.c.chat_id == Chat.id)
        .where(chat_participants.c.user_id == user_id, Chat.is_active.is_(True))
    )
    return list(result.scalars().all())


async def add_message(
    db: AsyncSession,
    chat: Chat,
    sender_id: int,
    content: str,
    message_type: MessageType = MessageType.TEXT,
) -> Message:
    """Ajouter un message et mettre à jour l'aperçu / Add a message and refresh the preview."""
    now = utcnow()
    message = Message(
        chat_id=chat.id,
        sender_id=sender_id,
        content=content,
        message_type=message_type,
        created_at=now,
    )
    db.add(message)
    chat.last_message_content = content
    chat.last_message_sender_id = sender_id
    chat.last_message_at = now
    await db.flush()

    result = await db.execute(
        select(Message).where(Message.id == message.id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def mark_read(db: AsyncSession, chat_id: int, reader_id: int) -> int:
    """Marquer lus les messages des autres / Mark messages from others as read."""
    result = await db.execute(
        update(Message)
        .where(Message.chat_id == chat_id, Message.sender_id != reader_id, Message.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
