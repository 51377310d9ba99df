"""Schémas Produit / Product schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from circulapp.models.product import CompactionStatus, ProductCategory, ProductCondition, ProductStatus
from circulapp.schemas.common import Pagination, PartialUpdate
from circulapp.schemas.user import UserBrief


class TimeSlot(BaseModel):
    day: str = Field(pattern=r"^(monday|tuesday|wednesday|thursday|friday|saturday|sunday)$")
    start_time: str = Field(pattern=r"^([01]?\d|2[0-3]):[0-5]\d$")
    end_time: str = Field(pattern=r"^([01]?\d|2[0-3]):[0-5]\d$")


class ProductImageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    url: str
    filename: str
    mime_type: str
    file_size: int


class ProductCreate(BaseModel):
    title: str = Field(min_length=5, max_length=100)
    description: str = Field(min_length=10, max_length=1000)
    category: ProductCategory
    condition: ProductCondition
    weight: float | None = Field(default=None, gt=0)
    length: float | None = Field(default=None, gt=0)
    width: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)
    dimension_unit: str = Field(default="cm", pattern=r"^(cm|m)$")
    address: str = Field(min_length=1, max_length=255)
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    city: str | None = Field(default=None, max_length=100)
    province: str | None = Field(default=None, max_length=100)
    zone: str | None = Field(default=None, max_length=100)
    available_from: datetime | None = None
    available_until: datetime | None = None
    time_slots: list[TimeSlot] | None = None
    tags: list[str] | None = Field(default=None, max_length=10)
    is_compacted: bool = False
    material_type: str | None = Field(default=None, max_length=30)


class ProductUpdate(PartialUpdate):
    required_fields = ("title", "description", "category", "condition", "address", "lat", "lng", "is_compacted")

    title: str | None = Field(default=None, min_length=5, max_length=100)
    description: str | None = Field(default=None, min_length=10, max_length=1000)
    category: ProductCategory | None = None
    condition: ProductCondition | None = None
    weight: float | None = Field(default=None, gt=0)
    address: str | None = Field(default=None, max_length=255)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    city: str | None = Field(default=None, max_length=100)
    province: str | None = Field(default=None, max_length=100)
    zone: str | None = Field(default=None, max_length=100)
    available_from: datetime | None = None
    available_until: datetime | None = None
    time_slots: list[TimeSlot] | None = None
    tags: list[str] | None = Field(default=None, max_length=10)
    is_compacted: bool | None = None
    material_type: str | None = Field(default=None, max_length=30)


class ProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    title: str
    description: str
    category: ProductCategory
    condition: ProductCondition
    weight: float | None
    actual_weight: float | None
    length: float | None
    width: float | None
    height: float | None
    dimension_unit: str
    address: str
    lat: float
    lng: float
    city: str | None
    province: str | None
    zone: str | None
    owner_id: int
    owner: UserBrief | None = None
    status: ProductStatus
    available_from: datetime | None
    available_until: datetime | None
    time_slots: list[dict] | None
    tags: list[str] | None
    views: int
    is_compacted: bool
    images: list[ProductImageRead] = []
    material_id: int | None
    material_type: str | None
    compaction_status: CompactionStatus
    validation_notes: str | None
    quality_score: float | None
    recycling_value: float | None
    co2_reduction: float | None
    water_saved: float | None
    energy_saved: float | None
    created_at: datetime
    updated_at: datetime


class ProductWithDistance(ProductRead):
    distance_km: float | None = None


class ProductList(BaseModel):
    products: list[ProductWithDistance]
    pagination: Pagination
