"""Routes Signalements / Moderation report API routes.

`router` : dépôt par les utilisateurs / filing by users (/api/reports)
`admin_router` : traitement municipal / municipal handling (/api/municipal/reports)
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from circulapp.api.deps import audit, get_current_user, pagination_params, require_admin
from circulapp.database import get_db
from circulapp.models.report import (
    Report,
    ReportAction,
    ReportNote,
    ReportPriority,
    ReportSeverity,
    ReportStatus,
    ReportTimelineEntry,
    ReportType,
)
from circulapp.models.user import User, UserType
from circulapp.schemas.common import make_pagination
from circulapp.schemas.report import ReportAssign, ReportCreate, ReportRead, ReportStatusUpdate
from circulapp.services import reports as report_service
from circulapp.utils.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()

RELATED_WINDOW_DAYS = 30
MAX_RELATED = 10


async def _load_report(db: AsyncSession, report_id: int) -> Report | None:
    result = await db.execute(
        select(Report).where(Report.id == report_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_related_reports(db: AsyncSession, report: Report) -> list[Report]:
    """
    Signalements liés des 30 derniers jours / Related reports from the last 30 days.
    Même cible, même auteur, ou même type sur le même type de cible.
    Same target, same reporter, or same type on the same target type.
    """
    since = utcnow() - timedelta(days=RELATED_WINDOW_DAYS)
    result = await db.execute(
        select(Report)
        .where(
            Report.id != report.id,
            Report.created_at >= since,
            or_(
                and_(Report.target_type == report.target_type, Report.target_id == report.target_id),
                Report.reporter_id == report.reporter_id,
                and_(Report.report_type == report.report_type, Report.target_type == report.target_type),
            ),
        )
        .order_by(Report.created_at.desc())
        .limit(MAX_RELATED)
    )
    return list(result.scalars().all())


@router.post("/", response_model=ReportRead, status_code=201)
async def create_report(
    request: Request,
    data: ReportCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Déposer un signalement / File a report."""
    severity, priority = report_service.classify_severity(data.description)
    report = Report(
        reporter_id=user.id,
        report_type=data.report_type,
        sub_type=data.sub_type,
        target_type=data.target_type,
        target_id=data.target_id,
        target_title=data.target_title,
        description=data.description,
        evidence=[e.model_dump() for e in data.evidence] if data.evidence else None,
        category=data.category,
        severity=severity,
        is_anonymous=data.is_anonymous,
        source=data.source,
        ip_address=request.client.host if request.client else None,
        user_agent=(request.headers.get("user-agent") or "")[:255] or None,
        timeline=[ReportTimelineEntry(action="created", description="Report filed", performed_by_id=user.id)],
        notes=[],
        actions_taken=[],
    )
    report_service.set_priority(report, priority)
    db.add(report)
    await db.flush()

    related = await find_related_reports(db, report)
    report.related_report_ids = [r.id for r in related]
    report.similar_reports_count = len(related)
    await db.flush()

    logger.info("Report %s filed (%s, %s)", report.id, report.report_type.value, severity.value)
    return await _load_report(db, report.id)


@admin_router.get("/")
async def list_reports(
    status: ReportStatus | None = Query(default=None),
    severity: ReportSeverity | None = Query(default=None),
    report_type: ReportType | None = Query(default=None),
    priority: ReportPriority | None = Query(default=None),
    assigned_to_me: bool = Query(default=False),
    timeframe: int = Query(default=30, ge=1, le=365),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Liste des signalements avec résumé et statistiques / Reports list with summary and stats."""
    page, limit = pagination_params(page, limit)
    conditions = []
    if status is not None:
        conditions.append(Report.status == status)
    if severity is not None:
        conditions.append(Report.severity == severity)
    if report_type is not None:
        conditions.append(Report.report_type == report_type)
    if priority is not None:
        conditions.append(Report.priority == priority)
    if assigned_to_me:
        conditions.append(Report.assigned_to_id == admin.id)

    total = await db.scalar(select(func.count(Report.id)).where(*conditions)) or 0
    result = await db.execute(
        select(Report).where(*conditions)
        .order_by(Report.priority_rank.desc(), Report.created_at.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    reports = result.scalars().all()

    since = utcnow() - timedelta(days=timeframe)
    window = await db.execute(select(Report).where(Report.created_at >= since))

    return {
        "reports": [
            {**ReportRead.model_validate(r).model_dump(mode="json"), "summary": report_service.summary(r)}
            for r in reports
        ],
        "pagination": make_pagination(page, limit, total),
        "stats": report_service.statistics(list(window.scalars().all())),
    }


@admin_router.patch("/{report_id}/assign", response_model=ReportRead)
async def assign_report(
    report_id: int,
    data: ReportAssign,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Assigner à un administrateur / Assign to an administrator."""
    report = await _load_report(db, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")

    assignee = await db.get(User, data.assigned_to_id)
    if not assignee or assignee.user_type != UserType.COMUNA or not assignee.is_active:
        raise HTTPException(status_code=400, detail="Assignee must be an active municipal administrator")

    now = utcnow()
    report.assigned_to_id = assignee.id
    report.assigned_at = now
    report.timeline.append(ReportTimelineEntry(
        action="assigned",
        description=f"Assigned to {assignee.name}",
        performed_by_id=admin.id,
        timestamp=now,
    ))
    if report.status == ReportStatus.PENDING:
        report_service.change_status(report, ReportStatus.REVIEWING, admin.id, now)
    if data.note:
        report.notes.append(ReportNote(note=data.note, added_by_id=admin.id, added_at=now))

    audit(db, "report", report.id, "ASSIGN", admin.email, f"assigned_to={assignee.id}")
    await db.flush()
    return await _load_report(db, report_id)


@admin_router.patch("/{report_id}/status", response_model=ReportRead)
async def update_report_status(
    report_id: int,
    data: ReportStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Changer le statut avec résolution / Change status with resolution."""
    report = await _load_report(db, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")

    now = utcnow()
    report_service.change_status(report, data.status, admin.id, now)

    for key in ("resolution_summary", "resolution_reasoning", "findings", "follow_up_required"):
        value = getattr(data, key)
        if value is not None:
            setattr(report, key, value)
    if data.status in (ReportStatus.RESOLVED, ReportStatus.DISMISSED):
        report.resolved_by_id = admin.id

    for item in data.actions_taken:
        report.actions_taken.append(ReportAction(
            action=item.action,
            description=item.description,
            duration_days=item.duration_days,
            taken_by_id=admin.id,
            taken_at=now,
        ))
    if data.note:
        report.notes.append(ReportNote(note=data.note, added_by_id=admin.id, added_at=now))

    audit(db, "report", report.id, "STATUS", admin.email, data.status.value)
    await db.flush()
    return await _load_report(db, report_id)
