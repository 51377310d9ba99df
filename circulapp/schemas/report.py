"""Schémas Signalement / Report schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from circulapp.models.report import (
    ModerationAction,
    ReportCategory,
    ReportPriority,
    ReportSeverity,
    ReportSource,
    ReportStatus,
    ReportType,
    TargetType,
)
from circulapp.schemas.user import UserBrief


class EvidenceItem(BaseModel):
    type: str = Field(pattern=r"^(image|screenshot|document|link|text)$")
    url: str | None = Field(default=None, max_length=500)
    description: str | None = Field(default=None, max_length=500)


class ReportCreate(BaseModel):
    report_type: ReportType
    sub_type: str | None = Field(default=None, max_length=50)
    target_type: TargetType
    target_id: int
    target_title: str | None = Field(default=None, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    evidence: list[EvidenceItem] | None = Field(default=None, max_length=10)
    category: ReportCategory
    is_anonymous: bool = False
    source: ReportSource = ReportSource.WEB


class ReportAssign(BaseModel):
    assigned_to_id: int
    note: str | None = Field(default=None, max_length=1000)


class ActionInput(BaseModel):
    action: ModerationAction
    description: str | None = Field(default=None, max_length=1000)
    duration_days: int | None = Field(default=None, ge=1)


class ReportStatusUpdate(BaseModel):
    status: ReportStatus
    resolution_summary: str | None = Field(default=None, max_length=2000)
    resolution_reasoning: str | None = Field(default=None, max_length=2000)
    findings: str | None = Field(default=None, max_length=2000)
    follow_up_required: bool | None = None
    actions_taken: list[ActionInput] = []
    note: str | None = Field(default=None, max_length=1000)


class TimelineEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    action: str
    description: str | None
    performed_by_id: int | None
    timestamp: datetime


class ReportNoteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    note: str
    added_by_id: int | None
    added_at: datetime
    is_private: bool


class ReportActionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    action: ModerationAction
    description: str | None
    duration_days: int | None
    taken_by_id: int
    taken_at: datetime


class ReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    reporter_id: int
    report_type: ReportType
    sub_type: str | None
    target_type: TargetType
    target_id: int
    target_title: str | None
    description: str
    evidence: list[dict] | None
    severity: ReportSeverity
    category: ReportCategory
    status: ReportStatus
    priority: ReportPriority
    assigned_to_id: int | None
    assigned_to: UserBrief | None = None
    assigned_at: datetime | None
    findings: str | None
    related_report_ids: list[int] | None
    resolution_summary: str | None
    resolution_reasoning: str | None
    follow_up_required: bool
    resolved_at: datetime | None
    response_time: int | None
    resolution_time: int | None
    escalations: int
    similar_reports_count: int
    is_anonymous: bool
    source: ReportSource
    timeline: list[TimelineEntryRead] = []
    notes: list[ReportNoteRead] = []
    actions_taken: list[ReportActionRead] = []
    created_at: datetime
