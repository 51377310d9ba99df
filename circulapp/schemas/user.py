"""
Schémas Utilisateur / User schemas.
Profil, profil public, mot de passe, désactivation.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from circulapp.models.user import UserType


class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    avatar: str | None = None
    reputation_average: float = 0.0


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    email: str
    phone: str | None
    avatar: str | None
    address: str | None
    lat: float | None
    lng: float | None
    city: str | None
    province: str | None
    user_type: UserType
    is_verified: bool
    is_active: bool
    reputation_average: float
    reputation_count: int
    products_offered: int
    products_received: int
    transactions_completed: int
    created_at: datetime


class UserStats(BaseModel):
    total_products: int
    total_transactions: int


class ProfileResponse(BaseModel):
    user: UserRead
    stats: UserStats


class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    address: str | None = Field(default=None, max_length=255)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    city: str | None = Field(default=None, max_length=100)
    province: str | None = Field(default=None, max_length=100)


class PublicProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    avatar: str | None
    city: str | None
    province: str | None
    user_type: UserType
    is_verified: bool
    reputation_average: float
    reputation_count: int
    products_offered: int
    transactions_completed: int
    created_at: datetime


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=200)
    confirm_password: str


class DeactivateRequest(BaseModel):
    password: str = Field(min_length=1)
    reason: str | None = Field(default=None, max_length=500)


class UserStatusUpdate(BaseModel):
    """Activation/suspension par un admin / Activation/suspension by an admin."""
    is_active: bool
    reason: str | None = Field(default=None, max_length=500)


class ProducerApproval(BaseModel):
    approved: bool
    notes: str | None = Field(default=None, max_length=500)
