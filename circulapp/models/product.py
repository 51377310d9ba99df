"""Modèles Produit et Image / Product and product image models."""

import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from circulapp.database import Base
from circulapp.utils.dates import utcnow


class ProductCategory(str, enum.Enum):
    """Catégorie de produit / Product category."""
    ELECTRONICS = "electronics"
    FURNITURE = "furniture"
    CLOTHING = "clothing"
    BOOKS = "books"
    TOOLS = "tools"
    APPLIANCES = "appliances"
    SPORTS = "sports"
    TOYS = "toys"
    KITCHEN = "kitchen"
    GARDEN = "garden"
    OTHER = "other"


class ProductCondition(str, enum.Enum):
    """État du produit / Product condition."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ProductStatus(str, enum.Enum):
    """Statut de l'annonce / Listing status."""
    DRAFT = "draft"  # producteur non verifie / unverified producer
    AVAILABLE = "available"
    RESERVED = "reserved"
    DONATED = "donated"
    REMOVED = "removed"


class CompactionStatus(str, enum.Enum):
    """Statut de validation du matériau / Material validation status."""
    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"


class Product(Base):
    """Produit réutilisable publié par un utilisateur / Reusable product listed by a user."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[ProductCategory] = mapped_column(Enum(ProductCategory), nullable=False)
    condition: Mapped[ProductCondition] = mapped_column(Enum(ProductCondition), nullable=False)

    # Poids declare et pese / Declared and weighed weight (kg)
    weight: Mapped[float | None] = mapped_column(Float)
    actual_weight: Mapped[float | None] = mapped_column(Float)

    # Dimensions
    length: Mapped[float | None] = mapped_column(Float)
    width: Mapped[float | None] = mapped_column(Float)
    height: Mapped[float | None] = mapped_column(Float)
    dimension_unit: Mapped[str] = mapped_column(String(2), default="cm")  # cm | m

    # Localisation / Location
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    city: Mapped[str | None] = mapped_column(String(100))
    province: Mapped[str | None] = mapped_column(String(100))
    zone: Mapped[str | None] = mapped_column(String(100), index=True)

    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[ProductStatus] = mapped_column(Enum(ProductStatus), default=ProductStatus.AVAILABLE, nullable=False)

    # Disponibilite / Availability window
    available_from: Mapped[datetime | None] = mapped_column(DateTime)
    available_until: Mapped[datetime | None] = mapped_column(DateTime)
    time_slots: Mapped[list | None] = mapped_column(JSON)  # [{"day": "monday", "start_time": "09:00", "end_time": "12:00"}]

    tags: Mapped[list | None] = mapped_column(JSON)
    views: Mapped[int] = mapped_column(Integer, default=0)
    is_compacted: Mapped[bool] = mapped_column(Boolean, default=False)

    # Analyse matériau / Material analysis
    material_id: Mapped[int | None] = mapped_column(ForeignKey("materials.id"))
    material_type: Mapped[str | None] = mapped_column(String(30))
    compaction_status: Mapped[CompactionStatus] = mapped_column(
        Enum(CompactionStatus), default=CompactionStatus.PENDING, nullable=False
    )
    validated_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    validated_at: Mapped[datetime | None] = mapped_column(DateTime)
    validation_notes: Mapped[str | None] = mapped_column(Text)
    quality_score: Mapped[float | None] = mapped_column(Float)
    recommendations: Mapped[list | None] = mapped_column(JSON)
    recycling_value: Mapped[float | None] = mapped_column(Float)
    co2_reduction: Mapped[float | None] = mapped_column(Float)  # kg CO2
    water_saved: Mapped[float | None] = mapped_column(Float)  # litres
    energy_saved: Mapped[float | None] = mapped_column(Float)  # kWh

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relations
    owner: Mapped["User"] = relationship(foreign_keys=[owner_id], lazy="selectin")
    material: Mapped["Material | None"] = relationship(lazy="selectin")
    images: Mapped[list["ProductImage"]] = relationship(
        back_populates="product", cascade="all, delete-orphan", lazy="selectin", order_by="ProductImage.id"
    )

    @property
    def best_weight(self) -> float:
        """Poids pesé, sinon déclaré / Weighed weight, else declared."""
        return self.actual_weight or self.weight or 0.0

    def __repr__(self) -> str:
        return f"<Product {self.id} {self.title}>"


class ProductImage(Base):
    """Image stockée sur disque / Image stored on disk."""

    __tablename__ = "product_images"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    url: Mapped[str] = mapped_column(String(255), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(50), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)

    product: Mapped["Product"] = relationship(back_populates="images")
