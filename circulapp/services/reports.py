"""
Service de modération / Moderation service.
Classification de sévérité, changements de statut, résumé et statistiques.
Severity classification, status changes, summary and statistics.
"""

from collections import Counter
from datetime import datetime

from circulapp.models.report import (
    PRIORITY_RANK,
    Report,
    ReportPriority,
    ReportSeverity,
    ReportStatus,
    ReportTimelineEntry,
)
from circulapp.utils.dates import utcnow

# Mots-clés par niveau (espagnol et anglais) / Keywords per level (Spanish and English)
CRITICAL_KEYWORDS = ["amenaza", "violencia", "peligro", "menor", "drogas", "armas",
                     "threat", "violence", "danger", "minor", "drugs", "weapons"]
HIGH_KEYWORDS = ["fraude", "estafa", "acoso", "discriminación",
                 "fraud", "scam", "harassment", "discrimination"]
MEDIUM_KEYWORDS = ["spam", "contenido inapropiado", "falso", "inappropriate content", "fake"]

_CLOSED = (ReportStatus.RESOLVED, ReportStatus.DISMISSED)


def classify_severity(description: str) -> tuple[ReportSeverity, ReportPriority]:
    """Sévérité et priorité selon la description / Severity and priority from the description."""
    text = description.lower()
    if any(k in text for k in CRITICAL_KEYWORDS):
        return ReportSeverity.CRITICAL, ReportPriority.URGENT
    if any(k in text for k in HIGH_KEYWORDS):
        return ReportSeverity.HIGH, ReportPriority.HIGH
    if any(k in text for k in MEDIUM_KEYWORDS):
        return ReportSeverity.MEDIUM, ReportPriority.NORMAL
    return ReportSeverity.LOW, ReportPriority.LOW


def set_priority(report: Report, priority: ReportPriority) -> None:
    report.priority = priority
    report.priority_rank = PRIORITY_RANK[priority]


def _minutes_since(start: datetime, now: datetime) -> int:
    return round((now - start).total_seconds() / 60)


def change_status(
    report: Report,
    new_status: ReportStatus,
    performed_by_id: int | None = None,
    now: datetime | None = None,
) -> None:
    """
    Changer le statut et tenir les métriques / Change status and keep metrics.

    Première sortie de pending : temps de réponse. Entrée en resolved ou
    dismissed : date et temps de résolution. Chaque changement ajoute une
    entrée de timeline.
    First move away from pending records the response time. Moving into
    resolved or dismissed records the resolution date and time. Every change
    appends a timeline entry.
    """
    if report.status == new_status:
        return
    now = now or utcnow()

    report.status = new_status
    if new_status != ReportStatus.PENDING and report.response_time is None:
        report.response_time = _minutes_since(report.created_at, now)
    if new_status in _CLOSED and report.resolved_at is None:
        report.resolved_at = now
        report.resolution_time = _minutes_since(report.created_at, now)
    if new_status == ReportStatus.ESCALATED:
        report.escalations = (report.escalations or 0) + 1

    report.timeline.append(ReportTimelineEntry(
        action="status_change",
        description=f"Status changed to: {new_status.value}",
        performed_by_id=performed_by_id,
        timestamp=now,
    ))


def summary(report: Report, now: datetime | None = None) -> dict:
    """Résumé exécutif d'un signalement / Executive summary of a report."""
    end = report.resolved_at or now or utcnow()
    return {
        "id": report.id,
        "type": report.report_type.value,
        "severity": report.severity.value,
        "target": f"{report.target_type.value}: {report.target_title or report.target_id}",
        "status": report.status.value,
        "days_open": round((end - report.created_at).total_seconds() / 86400),
        "actions_taken": len(report.actions_taken),
        "escalated": (report.escalations or 0) > 0,
    }


def _average(values: list[int]) -> float | None:
    return round(sum(values) / len(values), 1) if values else None


def statistics(reports: list[Report]) -> dict:
    """Statistiques sur un lot de signalements / Statistics over a batch of reports."""
    by_status = Counter(r.status.value for r in reports)
    return {
        "total": len(reports),
        "pending": by_status.get(ReportStatus.PENDING.value, 0),
        "resolved": by_status.get(ReportStatus.RESOLVED.value, 0),
        "dismissed": by_status.get(ReportStatus.DISMISSED.value, 0),
        "by_status": dict(by_status),
        "avg_response_time": _average([r.response_time for r in reports if r.response_time is not None]),
        "avg_resolution_time": _average([r.resolution_time for r in reports if r.resolution_time is not None]),
        "by_type": dict(Counter(r.report_type.value for r in reports)),
        "by_severity": dict(Counter(r.severity.value for r in reports)),
    }
