"""Modèles Planning de collecte et Point de route / Collection schedule and route point models."""

import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from circulapp.database import Base
from circulapp.services import route_optimizer
from circulapp.utils.dates import utcnow

# Table de jonction RoutePoint <-> Product / Junction table RoutePoint <-> Product
route_point_products = Table(
    "route_point_products",
    Base.metadata,
    Column("route_point_id", ForeignKey("route_points.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
)


class DayOfWeek(str, enum.Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class Frequency(str, enum.Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class CapacityUnit(str, enum.Enum):
    KG = "kg"
    ITEMS = "items"
    M3 = "m3"


class VehicleType(str, enum.Enum):
    TRUCK = "truck"
    VAN = "van"
    CAR = "car"
    BICYCLE = "bicycle"
    WALKING = "walking"


class FuelType(str, enum.Enum):
    GASOLINE = "gasoline"
    DIESEL = "diesel"
    ELECTRIC = "electric"
    HYBRID = "hybrid"
    OTHER = "other"


class ScheduleStatus(str, enum.Enum):
    """Statut du planning / Schedule status."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class RoutePointStatus(str, enum.Enum):
    """Statut d'un arrêt / Stop status."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class CollectionSchedule(Base):
    __tablename__ = "collection_schedules"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    zone: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    area: Mapped[str | None] = mapped_column(String(100))
    day_of_week: Mapped[DayOfWeek] = mapped_column(Enum(DayOfWeek), nullable=False)
    time_slot_start: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    time_slot_end: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    frequency: Mapped[Frequency] = mapped_column(Enum(Frequency), default=Frequency.WEEKLY)
    material_types: Mapped[list] = mapped_column(JSON, default=list)

    # Capacite / Capacity
    capacity_current: Mapped[float] = mapped_column(Float, default=0.0)
    capacity_maximum: Mapped[float] = mapped_column(Float, nullable=False)
    capacity_unit: Mapped[CapacityUnit] = mapped_column(Enum(CapacityUnit), default=CapacityUnit.KG)

    # Vehicule / Vehicle
    vehicle_type: Mapped[VehicleType] = mapped_column(Enum(VehicleType), default=VehicleType.TRUCK)
    vehicle_plate: Mapped[str | None] = mapped_column(String(20))
    vehicle_capacity: Mapped[float | None] = mapped_column(Float)
    vehicle_fuel_type: Mapped[FuelType | None] = mapped_column(Enum(FuelType))

    collector_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    status: Mapped[ScheduleStatus] = mapped_column(Enum(ScheduleStatus), default=ScheduleStatus.SCHEDULED, index=True)
    scheduled_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    completed_date: Mapped[datetime | None] = mapped_column(DateTime)
    estimated_duration: Mapped[float | None] = mapped_column(Float)  # minutes

    # Meteo / Weather
    weather_condition: Mapped[str | None] = mapped_column(String(50))
    weather_temperature: Mapped[float | None] = mapped_column(Float)
    weather_affecting: Mapped[bool] = mapped_column(Boolean, default=False)

    # Resultats apres la tournee / Post-run results
    total_weight: Mapped[float] = mapped_column(Float, default=0.0)
    total_items: Mapped[int] = mapped_column(Integer, default=0)
    points_completed: Mapped[int] = mapped_column(Integer, default=0)
    points_skipped: Mapped[int] = mapped_column(Integer, default=0)
    duration: Mapped[float | None] = mapped_column(Float)  # minutes
    fuel_used: Mapped[float | None] = mapped_column(Float)
    carbon_footprint: Mapped[float | None] = mapped_column(Float)
    issues: Mapped[list] = mapped_column(JSON, default=list)

    # Notifications
    notification_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    notification_sent_at: Mapped[datetime | None] = mapped_column(DateTime)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Recurrence
    recurring_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    recurring_interval: Mapped[int | None] = mapped_column(Integer)  # jours / days
    recurring_end_date: Mapped[datetime | None] = mapped_column(DateTime)
    parent_schedule_id: Mapped[int | None] = mapped_column(ForeignKey("collection_schedules.id"), index=True)

    created_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relations
    route: Mapped[list["RoutePoint"]] = relationship(
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="RoutePoint.sequence_order",
        lazy="selectin",
    )
    collector: Mapped["User | None"] = relationship(foreign_keys=[collector_id], lazy="selectin")

    def has_capacity(self, additional_weight: float = 0) -> bool:
        """Capacité restante suffisante / Enough remaining capacity."""
        return route_optimizer.has_capacity(self.capacity_current or 0, self.capacity_maximum, additional_weight)

    def calculate_estimated_duration(self) -> float:
        """Durée estimée de la route dans l'ordre actuel / Estimated duration of the route in current order."""
        return route_optimizer.estimate_duration_minutes(self.route)

    def __repr__(self) -> str:
        return f"<CollectionSchedule {self.id} {self.zone} {self.scheduled_date:%Y-%m-%d}>"


class RoutePoint(Base):
    __tablename__ = "route_points"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    schedule_id: Mapped[int] = mapped_column(
        ForeignKey("collection_schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence_order: Mapped[int] = mapped_column(Integer, nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    estimated_time: Mapped[datetime | None] = mapped_column(DateTime)
    actual_time: Mapped[datetime | None] = mapped_column(DateTime)
    status: Mapped[RoutePointStatus] = mapped_column(Enum(RoutePointStatus), default=RoutePointStatus.PENDING)
    notes: Mapped[str | None] = mapped_column(Text)
    collected_weight: Mapped[float | None] = mapped_column(Float)
    collector_notes: Mapped[str | None] = mapped_column(Text)

    # Relations
    schedule: Mapped["CollectionSchedule"] = relationship(back_populates="route")
    products: Mapped[list["Product"]] = relationship(secondary=route_point_products, lazy="selectin")

    @property
    def product_ids(self) -> list[int]:
        return [p.id for p in self.products]

    def __repr__(self) -> str:
        return f"<RoutePoint schedule={self.schedule_id} seq={self.sequence_order} ({self.lat}, {self.lng})>"
