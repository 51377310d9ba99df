"""Schémas Avis / Review schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from circulapp.schemas.user import UserBrief


class ReviewCreate(BaseModel):
    transaction_id: int
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=500)
    communication: int | None = Field(default=None, ge=1, le=5)
    punctuality: int | None = Field(default=None, ge=1, le=5)
    product_condition: int | None = Field(default=None, ge=1, le=5)


class ReviewRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    transaction_id: int
    reviewer_id: int
    reviewer: UserBrief | None = None
    reviewee_id: int
    rating: int
    comment: str | None
    communication: int | None
    punctuality: int | None
    product_condition: int | None
    created_at: datetime
