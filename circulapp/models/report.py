"""Modèles Signalement / Moderation report models.

Report + timeline, notes administrateur et actions prises.
Report + timeline, admin notes and actions taken.
"""

import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from circulapp.database import Base
from circulapp.utils.dates import utcnow


class ReportType(str, enum.Enum):
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    FRAUD = "fraud"
    SPAM = "spam"
    SAFETY_CONCERN = "safety_concern"
    FAKE_PRODUCT = "fake_product"
    HARASSMENT = "harassment"
    SCAM = "scam"
    VIOLENCE_THREAT = "violence_threat"
    HATE_SPEECH = "hate_speech"
    COPYRIGHT_VIOLATION = "copyright_violation"
    PRIVACY_VIOLATION = "privacy_violation"
    UNDERAGE_USER = "underage_user"
    TECHNICAL_ISSUE = "technical_issue"
    MATERIAL_CONTAMINATION = "material_contamination"
    INCORRECT_COMPACTION = "incorrect_compaction"
    DANGEROUS_MATERIAL = "dangerous_material"
    OTHER = "other"


class TargetType(str, enum.Enum):
    """Entité signalée / Reported entity."""
    USER = "user"
    PRODUCT = "product"
    TRANSACTION = "transaction"
    CHAT = "chat"
    REVIEW = "review"
    MATERIAL = "material"


class ReportSeverity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReportCategory(str, enum.Enum):
    CONTENT = "content"
    BEHAVIOR = "behavior"
    SAFETY = "safety"
    TECHNICAL = "technical"
    LEGAL = "legal"
    ENVIRONMENTAL = "environmental"


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"
    ESCALATED = "escalated"


class ReportPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class ModerationAction(str, enum.Enum):
    """Action de modération / Moderation action."""
    WARNING = "warning"
    SUSPENSION = "suspension"
    REMOVAL = "removal"
    BAN = "ban"
    NO_ACTION = "no_action"
    EDUCATION = "education"
    MEDIATION = "mediation"


class ReportSource(str, enum.Enum):
    WEB = "web"
    MOBILE = "mobile"
    API = "api"
    ADMIN_PANEL = "admin_panel"


# Valeur de tri de la priorité (urgent d'abord) / Priority sort weight (urgent first)
PRIORITY_RANK = {
    ReportPriority.LOW: 0,
    ReportPriority.NORMAL: 1,
    ReportPriority.HIGH: 2,
    ReportPriority.URGENT: 3,
}


class Report(Base):
    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    reporter_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    report_type: Mapped[ReportType] = mapped_column(Enum(ReportType), nullable=False)
    sub_type: Mapped[str | None] = mapped_column(String(50))

    # Cible / Target
    target_type: Mapped[TargetType] = mapped_column(Enum(TargetType), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    target_title: Mapped[str | None] = mapped_column(String(200))
    target_url: Mapped[str | None] = mapped_column(String(255))

    description: Mapped[str] = mapped_column(Text, nullable=False)
    evidence: Mapped[list | None] = mapped_column(JSON)  # [{"type": "image", "url": ..., "description": ...}]
    severity: Mapped[ReportSeverity] = mapped_column(Enum(ReportSeverity), default=ReportSeverity.MEDIUM)
    category: Mapped[ReportCategory] = mapped_column(Enum(ReportCategory), nullable=False)
    status: Mapped[ReportStatus] = mapped_column(Enum(ReportStatus), default=ReportStatus.PENDING, index=True)
    priority: Mapped[ReportPriority] = mapped_column(Enum(ReportPriority), default=ReportPriority.NORMAL)
    # Tri SQL par priorite / SQL ordering by priority
    priority_rank: Mapped[int] = mapped_column(Integer, default=1)

    assigned_to_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Investigation
    findings: Mapped[str | None] = mapped_column(Text)
    related_report_ids: Mapped[list | None] = mapped_column(JSON)

    # Resolution
    resolution_summary: Mapped[str | None] = mapped_column(Text)
    resolution_reasoning: Mapped[str | None] = mapped_column(Text)
    follow_up_required: Mapped[bool] = mapped_column(Boolean, default=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime)
    resolved_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))

    # Metriques (minutes) / Metrics (minutes)
    response_time: Mapped[int | None] = mapped_column(Integer)
    resolution_time: Mapped[int | None] = mapped_column(Integer)
    escalations: Mapped[int] = mapped_column(Integer, default=0)
    similar_reports_count: Mapped[int] = mapped_column(Integer, default=0)

    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(String(255))
    source: Mapped[ReportSource] = mapped_column(Enum(ReportSource), default=ReportSource.WEB)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relations
    reporter: Mapped["User"] = relationship(foreign_keys=[reporter_id], lazy="selectin")
    assigned_to: Mapped["User | None"] = relationship(foreign_keys=[assigned_to_id], lazy="selectin")
    resolved_by: Mapped["User | None"] = relationship(foreign_keys=[resolved_by_id], lazy="selectin")
    timeline: Mapped[list["ReportTimelineEntry"]] = relationship(
        back_populates="report", cascade="all, delete-orphan", lazy="selectin", order_by="ReportTimelineEntry.id"
    )
    notes: Mapped[list["ReportNote"]] = relationship(
        back_populates="report", cascade="all, delete-orphan", lazy="selectin", order_by="ReportNote.id"
    )
    actions_taken: Mapped[list["ReportAction"]] = relationship(
        back_populates="report", cascade="all, delete-orphan", lazy="selectin", order_by="ReportAction.id"
    )

    def __repr__(self) -> str:
        return f"<Report {self.id} {self.report_type.value} {self.status.value}>"


class ReportTimelineEntry(Base):
    __tablename__ = "report_timeline"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    report_id: Mapped[int] = mapped_column(ForeignKey("reports.id", ondelete="CASCADE"), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    performed_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    report: Mapped["Report"] = relationship(back_populates="timeline")


class ReportNote(Base):
    """Note administrateur / Admin note."""

    __tablename__ = "report_notes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    report_id: Mapped[int] = mapped_column(ForeignKey("reports.id", ondelete="CASCADE"), nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False)
    added_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    added_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    is_private: Mapped[bool] = mapped_column(Boolean, default=True)

    report: Mapped["Report"] = relationship(back_populates="notes")


class ReportAction(Base):
    """Action de modération prise / Moderation action taken."""

    __tablename__ = "report_actions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    report_id: Mapped[int] = mapped_column(ForeignKey("reports.id", ondelete="CASCADE"), nullable=False)
    action: Mapped[ModerationAction] = mapped_column(Enum(ModerationAction), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    duration_days: Mapped[int | None] = mapped_column(Integer)  # suspensions temporaires / temporary suspensions
    taken_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    taken_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    report: Mapped["Report"] = relationship(back_populates="actions_taken")
