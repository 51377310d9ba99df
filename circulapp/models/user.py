"""
Modèle Utilisateur / User model.
Particuliers, producteurs et administrateurs municipaux (comuna).
Individuals, producers and municipal administrators (comuna).
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from circulapp.database import Base
from circulapp.utils.dates import utcnow


class UserType(str, enum.Enum):
    """Type d'utilisateur / User type."""
    INDIVIDUAL = "individual"
    PRODUCER = "producer"
    COMUNA = "comuna"  # administrateur municipal / municipal administrator


class User(Base):
    """Utilisateur de l'application / Application user."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30))
    avatar: Mapped[str | None] = mapped_column(String(255))

    # Localisation / Location
    address: Mapped[str | None] = mapped_column(String(255))
    lat: Mapped[float | None] = mapped_column(Float)
    lng: Mapped[float | None] = mapped_column(Float)
    city: Mapped[str | None] = mapped_column(String(100))
    province: Mapped[str | None] = mapped_column(String(100))

    user_type: Mapped[UserType] = mapped_column(Enum(UserType), default=UserType.INDIVIDUAL, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Verification producteur / Producer verification
    verification_notes: Mapped[str | None] = mapped_column(Text)
    verified_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    verified_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Desactivation / Deactivation
    deactivation_reason: Mapped[str | None] = mapped_column(Text)
    deactivated_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Reputation (moyenne 0-5) / Reputation (0-5 average)
    reputation_average: Mapped[float] = mapped_column(Float, default=0.0)
    reputation_count: Mapped[int] = mapped_column(Integer, default=0)

    # Compteurs / Counters
    products_offered: Mapped[int] = mapped_column(Integer, default=0)
    products_received: Mapped[int] = mapped_column(Integer, default=0)
    transactions_completed: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.COMUNA

    def __repr__(self) -> str:
        return f"<User {self.email}>"
