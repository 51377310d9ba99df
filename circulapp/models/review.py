"""Modèle Avis / Review model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from circulapp.database import Base
from circulapp.utils.dates import utcnow


class Review(Base):
    __tablename__ = "reviews"
    # Un seul avis par transaction et par auteur / One review per transaction and reviewer
    __table_args__ = (UniqueConstraint("transaction_id", "reviewer_id", name="uq_review_transaction_reviewer"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(ForeignKey("transactions.id"), nullable=False)
    reviewer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    reviewee_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-5
    comment: Mapped[str | None] = mapped_column(String(500))
    communication: Mapped[int | None] = mapped_column(Integer)
    punctuality: Mapped[int | None] = mapped_column(Integer)
    product_condition: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relations
    transaction: Mapped["Transaction"] = relationship(lazy="selectin")
    reviewer: Mapped["User"] = relationship(foreign_keys=[reviewer_id], lazy="selectin")
    reviewee: Mapped["User"] = relationship(foreign_keys=[reviewee_id], lazy="selectin")

    def __repr__(self) -> str:
        return f"<Review {self.rating}/5 transaction={self.transaction_id}>"
