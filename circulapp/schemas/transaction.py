"""Schémas Transaction / Transaction schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from circulapp.models.product import ProductStatus
from circulapp.models.transaction import TransactionStatus
from circulapp.schemas.user import UserBrief


class TransactionCreate(BaseModel):
    product_id: int
    pickup_date: datetime | None = None
    pickup_time: str | None = Field(default=None, pattern=r"^([01]?\d|2[0-3]):[0-5]\d$")
    pickup_address: str | None = Field(default=None, max_length=255)
    pickup_lat: float | None = Field(default=None, ge=-90, le=90)
    pickup_lng: float | None = Field(default=None, ge=-180, le=180)
    notes: str | None = Field(default=None, max_length=500)


class TransactionCancel(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class ProductBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    title: str
    status: ProductStatus


class TransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    product_id: int
    product: ProductBrief | None = None
    donor_id: int
    donor: UserBrief | None = None
    recipient_id: int
    recipient: UserBrief | None = None
    status: TransactionStatus
    pickup_date: datetime | None
    pickup_time: str | None
    pickup_address: str | None
    notes: str | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    created_at: datetime
