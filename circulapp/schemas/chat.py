"""Schémas Messagerie / Chat schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from circulapp.models.chat import MessageType
from circulapp.schemas.user import UserBrief


class ChatStart(BaseModel):
    product_id: int
    message: str = Field(min_length=1, max_length=1000)


class MessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=1000)
    message_type: MessageType = MessageType.TEXT


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    chat_id: int
    sender_id: int
    sender: UserBrief | None = None
    content: str
    message_type: MessageType
    is_read: bool
    created_at: datetime


class ChatProductBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    title: str


class ChatRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    product_id: int | None
    product: ChatProductBrief | None = None
    participants: list[UserBrief] = []
    last_message_content: str | None
    last_message_sender_id: int | None
    last_message_at: datetime | None
    created_at: datetime
