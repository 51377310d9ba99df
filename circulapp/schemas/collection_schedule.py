"""Schémas Planning de collecte / Collection schedule schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from circulapp.models.collection_schedule import (
    CapacityUnit,
    DayOfWeek,
    Frequency,
    FuelType,
    RoutePointStatus,
    ScheduleStatus,
    VehicleType,
)
from circulapp.schemas.common import PartialUpdate

HHMM = r"^([01]?\d|2[0-3]):[0-5]\d$"


# --- RoutePoint ---
class RoutePointCreate(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    address: str = Field(min_length=1, max_length=255)
    product_ids: list[int] = []
    estimated_time: datetime | None = None
    notes: str | None = Field(default=None, max_length=500)


class RoutePointRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    sequence_order: int
    lat: float
    lng: float
    address: str
    product_ids: list[int] = []
    status: RoutePointStatus
    estimated_time: datetime | None
    actual_time: datetime | None
    collected_weight: float | None
    notes: str | None
    collector_notes: str | None


class RoutePointStatusUpdate(BaseModel):
    status: RoutePointStatus
    collected_weight: float | None = Field(default=None, ge=0)
    collector_notes: str | None = Field(default=None, max_length=500)


# --- CollectionSchedule ---
class RecurringConfig(BaseModel):
    enabled: bool = False
    interval: int | None = Field(default=None, ge=1)  # jours / days
    end_date: datetime | None = None


class ScheduleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    zone: str = Field(min_length=1, max_length=100)
    area: str | None = Field(default=None, max_length=100)
    day_of_week: DayOfWeek
    time_slot_start: str = Field(pattern=HHMM)
    time_slot_end: str = Field(pattern=HHMM)
    frequency: Frequency = Frequency.WEEKLY
    material_types: list[str] = []
    capacity_maximum: float = Field(gt=0)
    capacity_unit: CapacityUnit = CapacityUnit.KG
    vehicle_type: VehicleType = VehicleType.TRUCK
    vehicle_plate: str | None = Field(default=None, max_length=20)
    vehicle_capacity: float | None = Field(default=None, gt=0)
    vehicle_fuel_type: FuelType | None = None
    collector_id: int | None = None
    scheduled_date: datetime
    route: list[RoutePointCreate] = []
    recurring: RecurringConfig | None = None


class ScheduleUpdate(PartialUpdate):
    required_fields = (
        "title", "zone", "day_of_week", "time_slot_start", "time_slot_end", "frequency",
        "material_types", "capacity_maximum", "capacity_unit", "vehicle_type", "status",
        "weather_affecting", "issues", "route",
    )

    title: str | None = Field(default=None, min_length=1, max_length=100)
    zone: str | None = Field(default=None, min_length=1, max_length=100)
    area: str | None = Field(default=None, max_length=100)
    day_of_week: DayOfWeek | None = None
    time_slot_start: str | None = Field(default=None, pattern=HHMM)
    time_slot_end: str | None = Field(default=None, pattern=HHMM)
    frequency: Frequency | None = None
    material_types: list[str] | None = None
    capacity_maximum: float | None = Field(default=None, gt=0)
    capacity_unit: CapacityUnit | None = None
    vehicle_type: VehicleType | None = None
    vehicle_plate: str | None = Field(default=None, max_length=20)
    vehicle_capacity: float | None = Field(default=None, gt=0)
    vehicle_fuel_type: FuelType | None = None
    collector_id: int | None = None
    status: ScheduleStatus | None = None
    weather_condition: str | None = Field(default=None, max_length=50)
    weather_temperature: float | None = None
    weather_affecting: bool | None = None
    fuel_used: float | None = Field(default=None, ge=0)
    carbon_footprint: float | None = Field(default=None, ge=0)
    issues: list[str] | None = None
    route: list[RoutePointCreate] | None = None


class ScheduleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    title: str
    zone: str
    area: str | None
    day_of_week: DayOfWeek
    time_slot_start: str
    time_slot_end: str
    frequency: Frequency
    material_types: list[str]
    capacity_current: float
    capacity_maximum: float
    capacity_unit: CapacityUnit
    vehicle_type: VehicleType
    vehicle_plate: str | None
    vehicle_capacity: float | None
    vehicle_fuel_type: FuelType | None
    collector_id: int | None
    status: ScheduleStatus
    scheduled_date: datetime
    completed_date: datetime | None
    estimated_duration: float | None
    weather_condition: str | None
    weather_temperature: float | None
    weather_affecting: bool
    total_weight: float
    total_items: int
    points_completed: int
    points_skipped: int
    duration: float | None
    fuel_used: float | None
    carbon_footprint: float | None
    issues: list[str]
    notification_sent: bool
    reminder_sent: bool
    recurring_enabled: bool
    recurring_interval: int | None
    recurring_end_date: datetime | None
    parent_schedule_id: int | None
    created_by_id: int
    is_active: bool
    route: list[RoutePointRead] = []
    created_at: datetime
    updated_at: datetime


class ScheduleCreated(BaseModel):
    schedule: ScheduleRead
    recurring_created: int


class ScheduleListStats(BaseModel):
    total: int
    by_status: dict[str, int]
    total_capacity: float
    used_capacity: float


class ScheduleList(BaseModel):
    schedules: list[ScheduleRead]
    stats: ScheduleListStats
    utilization_rate: int


class OptimizeRouteResponse(BaseModel):
    original_points: int
    optimized_points: int
    estimated_duration: int  # minutes
    estimated_savings: int  # %
    original_distance_km: float
    optimized_distance_km: float


class ScheduleStatistics(BaseModel):
    schedule_id: int
    completion_rate: int
    efficiency: float
    carbon_footprint_per_kg: float
    average_time_per_point: float
