"""Modèle Matériau recyclable / Recyclable material model."""

import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from circulapp.database import Base
from circulapp.utils.dates import utcnow


class MaterialCategory(str, enum.Enum):
    """Famille de matériau / Material family."""
    PLASTIC = "plastic"
    PAPER = "paper"
    METAL = "metal"
    GLASS = "glass"
    ORGANIC = "organic"
    ELECTRONIC = "electronic"
    TEXTILE = "textile"
    WOOD = "wood"
    OTHER = "other"


class Material(Base):
    """Fiche du catalogue de matériaux / Material catalog entry."""

    __tablename__ = "materials"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[MaterialCategory] = mapped_column(Enum(MaterialCategory), nullable=False, index=True)
    sub_category: Mapped[str | None] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(String(500))
    compaction_instructions: Mapped[str] = mapped_column(Text, nullable=False)
    recycling_value: Mapped[float] = mapped_column(Float, default=0.0)  # par kg / per kg
    carbon_footprint_saved: Mapped[float] = mapped_column(Float, default=0.0)  # kg CO2 par kg / per kg
    standard_weight: Mapped[float] = mapped_column(Float, nullable=False)  # kg par unite / per unit

    # Criteres de validation / Validation criteria
    min_weight: Mapped[float] = mapped_column(Float, nullable=False)
    max_weight: Mapped[float] = mapped_column(Float, nullable=False)
    compaction_required: Mapped[bool] = mapped_column(Boolean, default=True)
    required_images: Mapped[list | None] = mapped_column(JSON)  # [{"type": "compacted", "description": ..., "required": true}]
    quality_standards: Mapped[list | None] = mapped_column(JSON)  # [{"criterion": ..., "description": ..., "required": true}]

    # Instructions de traitement / Processing instructions
    processing_steps: Mapped[list | None] = mapped_column(JSON)
    processing_tools: Mapped[list | None] = mapped_column(JSON)
    safety_warnings: Mapped[list | None] = mapped_column(JSON)
    processing_time_minutes: Mapped[int | None] = mapped_column(Integer)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    approved_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relations
    created_by: Mapped["User"] = relationship(foreign_keys=[created_by_id], lazy="selectin")
    approved_by: Mapped["User | None"] = relationship(foreign_keys=[approved_by_id], lazy="selectin")

    def __repr__(self) -> str:
        return f"<Material {self.name} ({self.category.value})>"
