"""Modèle Transaction (don) / Donation transaction model."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from circulapp.database import Base
from circulapp.utils.dates import utcnow


class TransactionStatus(str, enum.Enum):
    """Statut de la transaction / Transaction status."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)
    donor_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus), default=TransactionStatus.PENDING, nullable=False, index=True
    )
    pickup_date: Mapped[datetime | None] = mapped_column(DateTime)
    pickup_time: Mapped[str | None] = mapped_column(String(5))  # HH:MM
    pickup_address: Mapped[str | None] = mapped_column(String(255))
    pickup_lat: Mapped[float | None] = mapped_column(Float)
    pickup_lng: Mapped[float | None] = mapped_column(Float)
    notes: Mapped[str | None] = mapped_column(Text)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime)
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relations
    product: Mapped["Product"] = relationship(lazy="selectin")
    donor: Mapped["User"] = relationship(foreign_keys=[donor_id], lazy="selectin")
    recipient: Mapped["User"] = relationship(foreign_keys=[recipient_id], lazy="selectin")

    def is_participant(self, user_id: int) -> bool:
        return user_id in (self.donor_id, self.recipient_id)

    def __repr__(self) -> str:
        return f"<Transaction {self.id} {self.status.value}>"
