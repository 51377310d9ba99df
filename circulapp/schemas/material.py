"""Schémas Matériau / Material schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from circulapp.models.material import MaterialCategory
from circulapp.schemas.common import PartialUpdate


class RequiredImage(BaseModel):
    type: str = Field(pattern=r"^(before|during|after|compacted|packaging)$")
    description: str | None = None
    required: bool = True


class QualityStandard(BaseModel):
    criterion: str
    description: str | None = None
    required: bool = True


class MaterialBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    category: MaterialCategory
    sub_category: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    compaction_instructions: str = Field(min_length=1)
    recycling_value: float = Field(default=0.0, ge=0)
    carbon_footprint_saved: float = Field(default=0.0, ge=0)
    standard_weight: float = Field(gt=0)
    min_weight: float = Field(ge=0)
    max_weight: float = Field(gt=0)
    compaction_required: bool = True
    required_images: list[RequiredImage] | None = None
    quality_standards: list[QualityStandard] | None = None
    processing_steps: list[str] | None = None
    processing_tools: list[str] | None = None
    safety_warnings: list[str] | None = None
    processing_time_minutes: int | None = Field(default=None, ge=0)


class MaterialCreate(MaterialBase):
    pass


class MaterialUpdate(PartialUpdate):
    required_fields = (
        "name", "category", "compaction_instructions", "recycling_value", "carbon_footprint_saved",
        "standard_weight", "min_weight", "max_weight", "compaction_required", "is_active",
    )

    name: str | None = Field(default=None, min_length=1, max_length=100)
    category: MaterialCategory | None = None
    sub_category: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    compaction_instructions: str | None = None
    recycling_value: float | None = Field(default=None, ge=0)
    carbon_footprint_saved: float | None = Field(default=None, ge=0)
    standard_weight: float | None = Field(default=None, gt=0)
    min_weight: float | None = Field(default=None, ge=0)
    max_weight: float | None = Field(default=None, gt=0)
    compaction_required: bool | None = None
    required_images: list[RequiredImage] | None = None
    quality_standards: list[QualityStandard] | None = None
    processing_steps: list[str] | None = None
    processing_tools: list[str] | None = None
    safety_warnings: list[str] | None = None
    processing_time_minutes: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class MaterialRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    category: MaterialCategory
    sub_category: str | None
    description: str | None
    compaction_instructions: str
    recycling_value: float
    carbon_footprint_saved: float
    standard_weight: float
    min_weight: float
    max_weight: float
    compaction_required: bool
    required_images: list[dict] | None
    quality_standards: list[dict] | None
    processing_steps: list[str] | None
    processing_tools: list[str] | None
    safety_warnings: list[str] | None
    processing_time_minutes: int | None
    is_active: bool
    created_by_id: int
    approved_by_id: int | None
    approved_at: datetime | None
    created_at: datetime


class ImpactRequest(BaseModel):
    weight: float = Field(ge=0.1)


class EnvironmentalImpact(BaseModel):
    carbon_footprint_saved: float
    recycling_value: float
    equivalent_trees: float
    water_saved: float
    energy_saved: float


class ImpactResponse(BaseModel):
    material_id: int
    material_name: str
    weight: float
    impact: EnvironmentalImpact
    recommendations: list[str]


class SuggestRequest(BaseModel):
    product_id: int
    description: str | None = Field(default=None, max_length=1000)


class MaterialSuggestion(BaseModel):
    id: int
    name: str
    category: MaterialCategory
    compaction_instructions: str
    recycling_value: float
    estimated_impact: EnvironmentalImpact
    confidence: int


class SuggestResponse(BaseModel):
    product_id: int
    suggested_materials: list[MaterialSuggestion]


class MaterialIssueReport(BaseModel):
    issue_type: str = Field(pattern=r"^(incorrect_instructions|outdated_info|missing_info|other)$")
    description: str = Field(min_length=1, max_length=2000)
    suggestion: str | None = Field(default=None, max_length=1000)


class MaterialValidationRequest(BaseModel):
    """Validation d'un produit compacté / Compacted product validation."""
    product_id: int
    validation_result: str = Field(pattern=r"^(validated|rejected)$")
    notes: str | None = Field(default=None, max_length=1000)
    quality_score: float | None = Field(default=None, ge=0, le=100)
    recommendations: list[str] | None = None
    material_id: int | None = None
    actual_weight: float | None = Field(default=None, gt=0)
