"""Tests des services / Service tests."""

from dataclasses import dataclass
from datetime import datetime, timedelta

import pytest

from circulapp.models import (
    CapacityUnit,
    CollectionSchedule,
    Material,
    MaterialCategory,
    Product,
    ProductCategory,
    Report,
    ReportCategory,
    ReportPriority,
    ReportSeverity,
    ReportStatus,
    ReportType,
    RoutePoint,
    RoutePointStatus,
    ScheduleStatus,
    TargetType,
)
from circulapp.schemas.common import make_pagination
from circulapp.services import materials, reports, route_optimizer, schedules
from circulapp.services.reputation import reputation_from_ratings


@dataclass
class Stop:
    name: str
    lat: float
    lng: float


A, B, C, D = Stop("A", 0, 0), Stop("B", 0, 1), Stop("C", 0, 10), Stop("D", 0, 2)


# --- route optimizer ---


def test_nearest_neighbour_order():
    ordered = route_optimizer.optimize_route([A, B, C, D])
    assert [p.name for p in ordered] == ["A", "B", "D", "C"]


def test_optimize_keeps_first_point_and_input():
    points = [C, A, D, B]
    ordered = route_optimizer.optimize_route(points)
    assert ordered[0] is C
    assert sorted(p.name for p in ordered) == ["A", "B", "C", "D"]
    assert [p.name for p in points] == ["C", "A", "D", "B"]


def test_optimize_tie_goes_to_earliest():
    west, east = Stop("W", 0, -1), Stop("E", 0, 1)
    ordered = route_optimizer.optimize_route([A, east, west])
    assert [p.name for p in ordered] == ["A", "E", "W"]


def test_optimize_trivial_routes():
    assert route_optimizer.optimize_route([]) == []
    assert route_optimizer.optimize_route([A]) == [A]


def test_optimize_never_longer_on_line():
    original = [A, C, B, D]
    optimized = route_optimizer.optimize_route(original)
    assert route_optimizer.route_distance_km(optimized) <= route_optimizer.route_distance_km(original)


def test_approximate_distance():
    assert route_optimizer.approximate_distance_km(A, Stop("N", 1, 0)) == pytest.approx(111)
    assert route_optimizer.approximate_distance_km(A, B) == pytest.approx(85)
    assert route_optimizer.approximate_distance_km(A, A) == 0


def test_duration_estimate():
    same = [Stop(str(i), -34.6, -58.4) for i in range(3)]
    assert route_optimizer.estimate_duration_minutes(same) == 45
    assert route_optimizer.estimate_duration_minutes([]) == 0
    # 2 arrêts + 85 km * 5 min
    assert route_optimizer.estimate_duration_minutes([A, B]) == pytest.approx(30 + 425)


def test_capacity():
    assert route_optimizer.has_capacity(8, 10, 2)
    assert not route_optimizer.has_capacity(8, 10, 3)
    assert route_optimizer.has_capacity(0, 10)


def test_savings_is_count_based():
    assert route_optimizer.savings_percent(4, 4) == 0
    assert route_optimizer.savings_percent(0, 0) == 0


# --- schedules ---


def test_time_slot_validation():
    schedules.validate_time_slot("08:00", "12:00")
    with pytest.raises(schedules.ScheduleValidationError, match="Start time must be before end time"):
        schedules.validate_time_slot("12:00", "12:00")
    with pytest.raises(schedules.ScheduleValidationError):
        schedules.validate_time_slot("14:00", "09:30")


def test_past_date_rejected():
    now = datetime(2030, 1, 10)
    schedules.validate_schedule("08:00", "10:00", datetime(2030, 1, 11), now=now)
    schedules.validate_schedule("08:00", "10:00", None, now=now)
    with pytest.raises(schedules.ScheduleValidationError, match="past"):
        schedules.validate_schedule("08:00", "10:00", datetime(2030, 1, 9), now=now)


def test_recurring_dates():
    base = datetime(2030, 1, 1, 8)
    dates = schedules.recurring_dates(base, 7, datetime(2030, 1, 15, 8))
    assert dates == [datetime(2030, 1, 8, 8), datetime(2030, 1, 15, 8)]
    assert schedules.recurring_dates(base, 7, datetime(2030, 1, 7)) == []
    with pytest.raises(schedules.ScheduleValidationError):
        schedules.recurring_dates(base, 0, datetime(2030, 2, 1))


def _schedule(points=(), **kwargs) -> CollectionSchedule:
    values = dict(
        id=1,
        title="Ronda norte",
        zone="Norte",
        time_slot_start="08:00",
        time_slot_end="12:00",
        scheduled_date=datetime(2030, 1, 1, 8),
        capacity_current=0.0,
        capacity_maximum=10.0,
        capacity_unit=CapacityUnit.KG,
        status=ScheduleStatus.SCHEDULED,
        created_by_id=1,
        material_types=["plastic"],
    )
    values.update(kwargs)
    route = [
        RoutePoint(sequence_order=i, lat=p.lat, lng=p.lng, address=p.name, status=RoutePointStatus.PENDING)
        for i, p in enumerate(points)
    ]
    return CollectionSchedule(route=route, **values)


def test_build_recurring_schedules():
    base = _schedule([A, B])
    clones = schedules.build_recurring_schedules(base, 7, datetime(2030, 1, 20))
    assert [c.scheduled_date.day for c in clones] == [8, 15]
    for clone in clones:
        assert clone.parent_schedule_id == 1
        assert clone.status == ScheduleStatus.SCHEDULED
        assert [p.address for p in clone.route] == ["A", "B"]
        assert all(p.status == RoutePointStatus.PENDING for p in clone.route)


def test_apply_optimized_order():
    s = _schedule([A, B, C, D])
    result = schedules.apply_optimized_order(s)
    assert [p.address for p in s.route] == ["A", "B", "D", "C"]
    assert [p.sequence_order for p in s.route] == [0, 1, 2, 3]
    assert result["original_points"] == result["optimized_points"] == 4
    assert result["estimated_savings"] == 0
    assert result["optimized_distance_km"] == pytest.approx(850)
    assert result["original_distance_km"] == pytest.approx(1530)
    assert s.estimated_duration == pytest.approx(4 * 15 + 850 * 5)


def test_point_status_flow_completes_schedule():
    s = _schedule([A, B])
    first, second = s.route
    start = datetime(2030, 1, 1, 8)

    schedules.update_point_status(s, first, RoutePointStatus.IN_PROGRESS, now=start)
    assert s.status == ScheduleStatus.IN_PROGRESS
    assert first.actual_time == start

    schedules.update_point_status(s, first, RoutePointStatus.COMPLETED, collected_weight=4, now=start)
    assert s.capacity_current == 4
    assert s.total_weight == 4
    assert s.points_completed == 1
    assert s.status == ScheduleStatus.IN_PROGRESS

    schedules.update_point_status(s, second, RoutePointStatus.SKIPPED, now=start + timedelta(minutes=30))
    assert s.points_skipped == 1
    assert s.status == ScheduleStatus.COMPLETED
    assert s.duration == 30


def test_point_status_rejects_bad_transition():
    s = _schedule([A])
    with pytest.raises(schedules.ScheduleValidationError):
        schedules.update_point_status(s, s.route[0], RoutePointStatus.COMPLETED)


def test_point_status_capacity_exceeded():
    s = _schedule([A], capacity_current=8.0)
    point = s.route[0]
    schedules.update_point_status(s, point, RoutePointStatus.IN_PROGRESS)
    with pytest.raises(schedules.CapacityExceededError):
        schedules.update_point_status(s, point, RoutePointStatus.COMPLETED, collected_weight=3)
    assert point.status == RoutePointStatus.IN_PROGRESS
    assert s.capacity_current == 8.0


@pytest.mark.parametrize("status", [ScheduleStatus.CANCELLED, ScheduleStatus.COMPLETED])
def test_point_status_frozen_on_closed_schedule(status):
    s = _schedule([A], status=status)
    with pytest.raises(schedules.ScheduleValidationError):
        schedules.update_point_status(s, s.route[0], RoutePointStatus.IN_PROGRESS)
    assert s.route[0].status == RoutePointStatus.PENDING
    assert s.status == status


def test_replace_route_resets_results():
    s = _schedule([A, B])
    first = s.route[0]
    schedules.update_point_status(s, first, RoutePointStatus.IN_PROGRESS)
    schedules.update_point_status(s, first, RoutePointStatus.COMPLETED, collected_weight=6)

    new_points = [
        RoutePoint(sequence_order=i, lat=p.lat, lng=p.lng, address=p.name, status=RoutePointStatus.PENDING)
        for i, p in enumerate([C, D, A])
    ]
    schedules.replace_route(s, new_points)
    assert s.capacity_current == 0
    assert s.total_weight == 0
    assert s.points_completed == 0
    assert s.points_skipped == 0
    assert s.status == ScheduleStatus.SCHEDULED
    assert s.estimated_duration == s.calculate_estimated_duration()
    assert schedules.schedule_statistics(s)["completion_rate"] == 0


def test_schedule_statistics():
    s = _schedule([A, B], points_completed=1, total_weight=20, duration=40, carbon_footprint=10)
    stats = schedules.schedule_statistics(s)
    assert stats == {
        "completion_rate": 50,
        "efficiency": 0.5,
        "carbon_footprint_per_kg": 0.5,
        "average_time_per_point": 40,
    }
    empty = schedules.schedule_statistics(_schedule())
    assert empty["completion_rate"] == 0
    assert empty["efficiency"] == 0


def test_utilization_rate():
    assert schedules.utilization_rate([_schedule(capacity_current=5.0), _schedule(capacity_current=0.0)]) == 25
    assert schedules.utilization_rate([]) == 0


# --- materials ---


def _material(**kwargs) -> Material:
    values = dict(
        name="Botellas PET",
        category=MaterialCategory.PLASTIC,
        description="Botellas plasticas de bebidas",
        recycling_value=0.5,
        carbon_footprint_saved=1.1,
        compaction_required=True,
        safety_warnings=None,
    )
    values.update(kwargs)
    return Material(**values)


def test_weight_range():
    materials.validate_weight_range(0.1, 5)
    with pytest.raises(materials.MaterialValidationError):
        materials.validate_weight_range(5, 5)


def test_environmental_impact():
    impact = materials.environmental_impact(_material(), 20)
    assert impact["carbon_footprint_saved"] == pytest.approx(22)
    assert impact["equivalent_trees"] == pytest.approx(1)
    assert impact["recycling_value"] == pytest.approx(10)
    assert impact["water_saved"] == pytest.approx(50)
    assert impact["energy_saved"] == pytest.approx(40)

    other = materials.environmental_impact(_material(category=MaterialCategory.WOOD), 3)
    assert other["water_saved"] == 6
    assert other["energy_saved"] == 3

    tips = materials.impact_recommendations(_material(), impact)
    assert len(tips) == 2


def test_suggestion_confidence():
    product = Product(
        title="Juguetes viejos",
        description="Juguetes plasticas para reciclar",
        category=ProductCategory.TOYS,
    )
    assert materials.suggested_category(ProductCategory.TOYS) == MaterialCategory.PLASTIC
    assert materials.suggested_category(ProductCategory.OTHER) == MaterialCategory.OTHER
    # +30 famille, +5 "plasticas"
    assert materials.suggestion_confidence(product, _material()) == 85
    assert materials.suggestion_confidence(product, _material(category=MaterialCategory.GLASS, name="Vidrio", description="")) == 50


# --- reports ---


def test_classify_severity():
    assert reports.classify_severity("Recibí una amenaza") == (ReportSeverity.CRITICAL, ReportPriority.URGENT)
    assert reports.classify_severity("This listing is a SCAM") == (ReportSeverity.HIGH, ReportPriority.HIGH)
    assert reports.classify_severity("Producto falso") == (ReportSeverity.MEDIUM, ReportPriority.NORMAL)
    assert reports.classify_severity("No me gusta la foto") == (ReportSeverity.LOW, ReportPriority.LOW)


def _report(**kwargs) -> Report:
    values = dict(
        id=3,
        report_type=ReportType.SPAM,
        target_type=TargetType.PRODUCT,
        target_id=12,
        target_title="Silla",
        description="spam everywhere",
        category=ReportCategory.CONTENT,
        severity=ReportSeverity.MEDIUM,
        status=ReportStatus.PENDING,
        created_at=datetime(2030, 1, 1, 10),
        escalations=0,
    )
    values.update(kwargs)
    return Report(**values)


def test_change_status_metrics():
    report = _report()
    reports.change_status(report, ReportStatus.REVIEWING, performed_by_id=1, now=datetime(2030, 1, 1, 10, 30))
    assert report.response_time == 30
    assert report.resolved_at is None

    reports.change_status(report, ReportStatus.ESCALATED, now=datetime(2030, 1, 1, 11))
    assert report.escalations == 1

    reports.change_status(report, ReportStatus.RESOLVED, now=datetime(2030, 1, 1, 12))
    assert report.response_time == 30
    assert report.resolution_time == 120
    assert [e.action for e in report.timeline] == ["status_change"] * 3

    reports.change_status(report, ReportStatus.RESOLVED, now=datetime(2030, 1, 2))
    assert len(report.timeline) == 3


def test_set_priority_rank():
    report = _report()
    reports.set_priority(report, ReportPriority.URGENT)
    assert report.priority_rank == 3


def test_report_summary_and_statistics():
    report = _report()
    summary = reports.summary(report, now=datetime(2030, 1, 3, 10))
    assert summary["days_open"] == 2
    assert summary["target"] == "product: Silla"
    assert summary["escalated"] is False

    closed = _report(status=ReportStatus.RESOLVED, response_time=10, resolution_time=60)
    stats = reports.statistics([report, closed])
    assert stats["total"] == 2
    assert stats["pending"] == 1
    assert stats["resolved"] == 1
    assert stats["avg_response_time"] == 10
    assert stats["by_type"] == {"spam": 2}


# --- divers / misc ---


def test_reputation():
    assert reputation_from_ratings([]) == (0.0, 0)
    assert reputation_from_ratings([5, 4, 4]) == (4.3, 3)


def test_pagination():
    page = make_pagination(2, 10, 25)
    assert page.total_pages == 3
    assert page.has_next and page.has_prev
    assert make_pagination(1, 10, 0).total_pages == 0
