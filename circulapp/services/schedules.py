"""
Service des plannings de collecte / Collection schedule service.
Validation à l'enregistrement, récurrence, suivi des arrêts et statistiques.
Save-time validation, recurrence, stop tracking and statistics.
"""

from datetime import datetime, timedelta

from circulapp.models.collection_schedule import (
    CollectionSchedule,
    RoutePoint,
    RoutePointStatus,
    ScheduleStatus,
)
from circulapp.services import route_optimizer
from circulapp.utils.dates import parse_hhmm, utcnow


class ScheduleValidationError(ValueError):
    """Règle métier violée sur un planning / Schedule business rule violated."""


class CapacityExceededError(ScheduleValidationError):
    """Le poids collecté dépasse la capacité / Collected weight exceeds capacity."""


# Transitions autorisées des arrêts / Allowed stop transitions
POINT_TRANSITIONS: dict[RoutePointStatus, set[RoutePointStatus]] = {
    RoutePointStatus.PENDING: {RoutePointStatus.IN_PROGRESS, RoutePointStatus.SKIPPED},
    RoutePointStatus.IN_PROGRESS: {RoutePointStatus.COMPLETED, RoutePointStatus.SKIPPED},
    RoutePointStatus.COMPLETED: set(),
    RoutePointStatus.SKIPPED: set(),
}

_FINISHED_POINT = (RoutePointStatus.COMPLETED, RoutePointStatus.SKIPPED)

# Plannings figés : plus aucun arrêt ne bouge / Frozen schedules: no stop moves anymore
_CLOSED_SCHEDULE = (ScheduleStatus.COMPLETED, ScheduleStatus.CANCELLED)


def validate_time_slot(start: str, end: str) -> None:
    if parse_hhmm(start) >= parse_hhmm(end):
        raise ScheduleValidationError("Start time must be before end time")


def validate_scheduled_date(scheduled_date: datetime, now: datetime | None = None) -> None:
    if scheduled_date < (now or utcnow()):
        raise ScheduleValidationError("Scheduled date cannot be in the past")


def validate_schedule(
    time_slot_start: str,
    time_slot_end: str,
    scheduled_date: datetime | None = None,
    now: datetime | None = None,
) -> None:
    """
    Valider un planning avant écriture / Validate a schedule before writing.
    La date n'est contrôlée que si fournie (création) / Date is only checked when given (creation).
    """
    validate_time_slot(time_slot_start, time_slot_end)
    if scheduled_date is not None:
        validate_scheduled_date(scheduled_date, now)


def recurring_dates(base_date: datetime, interval_days: int, end_date: datetime) -> list[datetime]:
    """
    Dates des occurrences futures / Dates of future occurrences.
    base + k * intervalle pour k >= 1, tant que <= date de fin. La date de base est exclue.
    base + k * interval for k >= 1, while <= end date. The base date is excluded.
    """
    if interval_days < 1:
        raise ScheduleValidationError("Recurring interval must be at least 1 day")

    dates = []
    step = timedelta(days=interval_days)
    current = base_date + step
    while current <= end_date:
        dates.append(current)
        current += step
    return dates


def _clone_point(point: RoutePoint) -> RoutePoint:
    return RoutePoint(
        sequence_order=point.sequence_order,
        lat=point.lat,
        lng=point.lng,
        address=point.address,
        notes=point.notes,
        status=RoutePointStatus.PENDING,
        products=list(point.products),
    )


def build_recurring_schedules(
    base: CollectionSchedule, interval_days: int, end_date: datetime
) -> list[CollectionSchedule]:
    """
    Cloner le planning de base pour chaque occurrence / Clone the base schedule for each occurrence.
    Statut et résultats remis à zéro, arrêts copiés en attente.
    Status and results reset, stops copied as pending.
    """
    clones = []
    for occurrence in recurring_dates(base.scheduled_date, interval_days, end_date):
        clones.append(CollectionSchedule(
            title=base.title,
            zone=base.zone,
            area=base.area,
            day_of_week=base.day_of_week,
            time_slot_start=base.time_slot_start,
            time_slot_end=base.time_slot_end,
            frequency=base.frequency,
            material_types=list(base.material_types or []),
            capacity_current=0.0,
            capacity_maximum=base.capacity_maximum,
            capacity_unit=base.capacity_unit,
            vehicle_type=base.vehicle_type,
            vehicle_plate=base.vehicle_plate,
            vehicle_capacity=base.vehicle_capacity,
            vehicle_fuel_type=base.vehicle_fuel_type,
            collector_id=base.collector_id,
            status=ScheduleStatus.SCHEDULED,
            scheduled_date=occurrence,
            estimated_duration=base.estimated_duration,
            recurring_enabled=True,
            recurring_interval=interval_days,
            recurring_end_date=end_date,
            parent_schedule_id=base.id,
            created_by_id=base.created_by_id,
            route=[_clone_point(p) for p in base.route],
        ))
    return clones


def apply_optimized_order(schedule: CollectionSchedule) -> dict:
    """
    Réordonner la route et recalculer la durée / Reorder the route and recompute the duration.
    Retourne le résumé renvoyé par l'API / Returns the summary sent back by the API.
    """
    original = list(schedule.route)
    original_distance = route_optimizer.route_distance_km(original)

    optimized = route_optimizer.optimize_route(original)
    for index, point in enumerate(optimized):
        point.sequence_order = index
    schedule.route = optimized

    schedule.estimated_duration = route_optimizer.estimate_duration_minutes(optimized)

    return {
        "original_points": len(original),
        "optimized_points": len(optimized),
        "estimated_duration": round(schedule.estimated_duration),
        "estimated_savings": route_optimizer.savings_percent(len(original), len(optimized)),
        "original_distance_km": round(original_distance, 2),
        "optimized_distance_km": round(route_optimizer.route_distance_km(optimized), 2),
    }


def replace_route(schedule: CollectionSchedule, points: list[RoutePoint]) -> None:
    """
    Remplacer la route et repartir de zéro / Replace the route and start over.
    Les résultats de l'ancienne route sont remis à zéro.
    Results gathered on the old route are reset.
    """
    schedule.route = points
    schedule.estimated_duration = schedule.calculate_estimated_duration()
    schedule.capacity_current = 0.0
    schedule.total_weight = 0.0
    schedule.total_items = 0
    schedule.points_completed = 0
    schedule.points_skipped = 0
    schedule.duration = None
    schedule.completed_date = None
    if schedule.status in (ScheduleStatus.IN_PROGRESS, ScheduleStatus.COMPLETED):
        schedule.status = ScheduleStatus.SCHEDULED


def can_transition(current: RoutePointStatus, target: RoutePointStatus) -> bool:
    return target in POINT_TRANSITIONS[current]


def update_point_status(
    schedule: CollectionSchedule,
    point: RoutePoint,
    new_status: RoutePointStatus,
    collected_weight: float | None = None,
    collector_notes: str | None = None,
    now: datetime | None = None,
) -> None:
    """
    Faire avancer un arrêt et tenir les résultats du planning / Advance a stop and keep schedule results.

    Lève ScheduleValidationError sur transition interdite et CapacityExceededError
    si le poids collecté ne tient pas dans le véhicule.
    Raises ScheduleValidationError on a forbidden transition and
    CapacityExceededError when the collected weight does not fit.
    """
    now = now or utcnow()
    if schedule.status in _CLOSED_SCHEDULE:
        raise ScheduleValidationError(
            f"Cannot update route points of a {schedule.status.value} schedule"
        )
    if not can_transition(point.status, new_status):
        raise ScheduleValidationError(
            f"Cannot move route point from {point.status.value} to {new_status.value}"
        )

    weight = collected_weight or 0.0
    if new_status == RoutePointStatus.COMPLETED and not schedule.has_capacity(weight):
        raise CapacityExceededError(
            f"Collecting {weight} {schedule.capacity_unit.value} exceeds remaining capacity"
        )

    point.status = new_status
    if collector_notes is not None:
        point.collector_notes = collector_notes

    if new_status == RoutePointStatus.IN_PROGRESS:
        point.actual_time = now
        if schedule.status == ScheduleStatus.SCHEDULED:
            schedule.status = ScheduleStatus.IN_PROGRESS
    elif new_status == RoutePointStatus.COMPLETED:
        point.collected_weight = weight
        schedule.capacity_current = (schedule.capacity_current or 0) + weight
        schedule.total_weight = (schedule.total_weight or 0) + weight
        schedule.total_items = (schedule.total_items or 0) + len(point.products)
        schedule.points_completed = (schedule.points_completed or 0) + 1
    else:
        schedule.points_skipped = (schedule.points_skipped or 0) + 1

    if all(p.status in _FINISHED_POINT for p in schedule.route):
        _finish_schedule(schedule, now)


def _finish_schedule(schedule: CollectionSchedule, now: datetime) -> None:
    schedule.status = ScheduleStatus.COMPLETED
    schedule.completed_date = now
    started = [p.actual_time for p in schedule.route if p.actual_time is not None]
    if started:
        schedule.duration = round((now - min(started)).total_seconds() / 60, 1)


def schedule_statistics(schedule: CollectionSchedule) -> dict:
    """Statistiques d'une tournée / Run statistics."""
    points = len(schedule.route)
    completed = schedule.points_completed or 0
    duration = schedule.duration or 0
    total_weight = schedule.total_weight or 0

    completion_rate = (completed / points) * 100 if points > 0 else 0
    efficiency = total_weight / duration if duration > 0 else 0

    return {
        "completion_rate": round(completion_rate),
        "efficiency": round(efficiency, 2),
        "carbon_footprint_per_kg": (schedule.carbon_footprint or 0) / total_weight if total_weight > 0 else 0,
        "average_time_per_point": duration / completed if completed > 0 else 0,
    }


def utilization_rate(schedules: list[CollectionSchedule]) -> int:
    """Taux d'utilisation de la capacité en % / Capacity utilization in %."""
    total = sum(s.capacity_maximum for s in schedules)
    used = sum(s.capacity_current or 0 for s in schedules)
    return round(used / total * 100) if total > 0 else 0
