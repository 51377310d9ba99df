"""Tests des modèles / Model tests."""

from datetime import datetime

from circulapp.models import (
    CapacityUnit,
    CollectionSchedule,
    Material,
    MaterialCategory,
    ProductStatus,
    RoutePoint,
    RoutePointStatus,
    ScheduleStatus,
    User,
    UserType,
)


def _schedule(**kwargs) -> CollectionSchedule:
    values = dict(
        zone="Centro",
        scheduled_date=datetime(2030, 3, 4, 8, 0),
        capacity_current=0.0,
        capacity_maximum=10.0,
        capacity_unit=CapacityUnit.KG,
    )
    values.update(kwargs)
    return CollectionSchedule(**values)


def test_schedule_repr():
    s = _schedule(id=7)
    assert repr(s) == "<CollectionSchedule 7 Centro 2030-03-04>"


def test_user_and_material_repr():
    assert "ana@example.com" in repr(User(email="ana@example.com"))
    assert "plastic" in repr(Material(name="PET", category=MaterialCategory.PLASTIC))


def test_enums():
    assert UserType.COMUNA.value == "comuna"
    assert ScheduleStatus.IN_PROGRESS.value == "in_progress"
    assert RoutePointStatus.SKIPPED.value == "skipped"
    assert ProductStatus.DRAFT.value == "draft"
    assert CapacityUnit.M3.value == "m3"


def test_has_capacity():
    s = _schedule(capacity_current=8.0)
    assert s.has_capacity(1)
    assert s.has_capacity(2)
    assert not s.has_capacity(3)


def test_estimated_duration_same_location():
    s = _schedule(route=[
        RoutePoint(sequence_order=i, lat=-34.6, lng=-58.4, address=f"Stop {i}")
        for i in range(3)
    ])
    assert s.calculate_estimated_duration() == 45


def test_estimated_duration_empty_route():
    assert _schedule().calculate_estimated_duration() == 0


def test_route_point_product_ids_empty():
    point = RoutePoint(sequence_order=0, lat=0, lng=0, address="x")
    assert point.product_ids == []
