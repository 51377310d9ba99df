"""Tests des plannings de collecte et de l'administration municipale / Collection schedule and municipal tests."""

from datetime import timedelta

import pytest

from circulapp.models.user import UserType
from circulapp.utils.dates import utcnow

from .conftest import auth_headers, create_user, product_payload

URL = "/api/municipal/collection-schedule"

# A, B, C, D : B à 1 degré de longitude de A, C à 10, D à 2
STOPS = [
    {"lat": -34.0, "lng": -58.0, "address": "A"},
    {"lat": -34.0, "lng": -57.0, "address": "B"},
    {"lat": -34.0, "lng": -48.0, "address": "C"},
    {"lat": -34.0, "lng": -56.0, "address": "D"},
]


def schedule_payload(**overrides) -> dict:
    payload = {
        "title": "Recoleccion zona norte",
        "zone": "Norte",
        "day_of_week": "monday",
        "time_slot_start": "08:00",
        "time_slot_end": "12:00",
        "material_types": ["plastic", "paper"],
        "capacity_maximum": 10,
        "scheduled_date": (utcnow() + timedelta(days=1)).isoformat(),
        "route": STOPS,
    }
    payload.update(overrides)
    return payload


async def create_schedule(client, headers, **overrides) -> dict:
    resp = await client.post(URL, json=schedule_payload(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["schedule"]


@pytest.mark.asyncio
async def test_schedules_require_admin(client, alice_headers):
    resp = await client.post(URL, json=schedule_payload(), headers=alice_headers)
    assert resp.status_code == 403
    resp = await client.get(URL, headers=alice_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_create_schedule(client, admin_headers):
    schedule = await create_schedule(client, admin_headers)
    assert schedule["status"] == "scheduled"
    assert schedule["capacity_current"] == 0
    assert [p["address"] for p in schedule["route"]] == ["A", "B", "C", "D"]
    assert all(p["status"] == "pending" for p in schedule["route"])
    # 4 arrêts * 15 + 1530 km * 5
    assert schedule["estimated_duration"] == pytest.approx(7710)


@pytest.mark.asyncio
async def test_create_schedule_validation(client, admin_headers):
    resp = await client.post(URL, json=schedule_payload(time_slot_start="12:00", time_slot_end="08:00"),
                             headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Start time must be before end time"

    past = (utcnow() - timedelta(days=1)).isoformat()
    resp = await client.post(URL, json=schedule_payload(scheduled_date=past), headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Scheduled date cannot be in the past"

    resp = await client.post(URL, json=schedule_payload(recurring={"enabled": True, "interval": 7}),
                             headers=admin_headers)
    assert resp.status_code == 400

    resp = await client.post(URL, json=schedule_payload(time_slot_start="8h"), headers=admin_headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_recurring_schedule(client, admin_headers):
    base = utcnow() + timedelta(days=1)
    resp = await client.post(URL, json=schedule_payload(
        scheduled_date=base.isoformat(),
        recurring={"enabled": True, "interval": 7, "end_date": (base + timedelta(days=20)).isoformat()},
    ), headers=admin_headers)
    assert resp.status_code == 201
    data = resp.json()
    assert data["recurring_created"] == 2
    parent_id = data["schedule"]["id"]

    resp = await client.get(URL, headers=admin_headers)
    listing = resp.json()
    assert listing["stats"]["total"] == 3
    assert listing["utilization_rate"] == 0
    children = [s for s in listing["schedules"] if s["parent_schedule_id"] == parent_id]
    assert len(children) == 2
    assert all(len(c["route"]) == 4 for c in children)
    assert all(c["recurring_interval"] == 7 for c in children)


@pytest.mark.asyncio
async def test_optimize_route(client, admin_headers):
    schedule = await create_schedule(client, admin_headers)

    resp = await client.patch(f"{URL}/{schedule['id']}/optimize-route", headers=admin_headers)
    assert resp.status_code == 200
    result = resp.json()
    assert result["original_points"] == 4
    assert result["optimized_points"] == 4
    assert result["estimated_savings"] == 0
    assert result["original_distance_km"] == pytest.approx(1530)
    assert result["optimized_distance_km"] == pytest.approx(850)
    assert result["estimated_duration"] == 4310

    resp = await client.get(f"{URL}/{schedule['id']}", headers=admin_headers)
    route = resp.json()["route"]
    assert [p["address"] for p in route] == ["A", "B", "D", "C"]
    assert [p["sequence_order"] for p in route] == [0, 1, 2, 3]
    assert resp.json()["estimated_duration"] == pytest.approx(4310)


@pytest.mark.asyncio
async def test_optimize_empty_route(client, admin_headers):
    schedule = await create_schedule(client, admin_headers, route=[])
    resp = await client.patch(f"{URL}/{schedule['id']}/optimize-route", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["optimized_points"] == 0
    assert resp.json()["estimated_duration"] == 0


@pytest.mark.asyncio
async def test_route_point_lifecycle(client, admin_headers):
    schedule = await create_schedule(client, admin_headers, route=STOPS[:2])
    first, second = (p["id"] for p in schedule["route"])
    point_url = f"{URL}/{schedule['id']}/route-points"

    resp = await client.patch(f"{point_url}/{first}/status", json={"status": "completed"}, headers=admin_headers)
    assert resp.status_code == 400

    resp = await client.patch(f"{point_url}/{first}/status", json={"status": "in_progress"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "in_progress"

    resp = await client.patch(f"{point_url}/{first}/status",
                              json={"status": "completed", "collected_weight": 12}, headers=admin_headers)
    assert resp.status_code == 409

    resp = await client.patch(f"{point_url}/{first}/status",
                              json={"status": "completed", "collected_weight": 6, "collector_notes": "ok"},
                              headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["capacity_current"] == 6
    assert data["total_weight"] == 6
    assert data["points_completed"] == 1

    resp = await client.patch(f"{point_url}/{second}/status", json={"status": "skipped"}, headers=admin_headers)
    data = resp.json()
    assert data["status"] == "completed"
    assert data["points_skipped"] == 1
    assert data["completed_date"] is not None

    resp = await client.get(f"{URL}/{schedule['id']}/statistics", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["completion_rate"] == 50

    resp = await client.patch(f"{point_url}/9999/status", json={"status": "in_progress"}, headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_schedule(client, admin_headers):
    schedule = await create_schedule(client, admin_headers)
    url = f"{URL}/{schedule['id']}"

    resp = await client.put(url, json={"time_slot_end": "07:00"}, headers=admin_headers)
    assert resp.status_code == 400

    resp = await client.put(url, json={"title": "Ronda sur", "route": STOPS[:1]}, headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["title"] == "Ronda sur"
    assert len(data["route"]) == 1
    assert data["estimated_duration"] == 15


@pytest.mark.asyncio
async def test_update_schedule_rejects_null_required_fields(client, admin_headers):
    schedule = await create_schedule(client, admin_headers)
    url = f"{URL}/{schedule['id']}"

    for field in ("time_slot_start", "time_slot_end", "capacity_maximum", "zone", "route"):
        resp = await client.put(url, json={field: None}, headers=admin_headers)
        assert resp.status_code == 422, field

    resp = await client.put(url, json={"area": None, "vehicle_plate": None}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["time_slot_start"] == "08:00"
    assert resp.json()["capacity_maximum"] == 10


@pytest.mark.asyncio
async def test_replacing_route_resets_results(client, admin_headers):
    schedule = await create_schedule(client, admin_headers, route=STOPS[:2])
    url = f"{URL}/{schedule['id']}"
    first = schedule["route"][0]["id"]

    await client.patch(f"{url}/route-points/{first}/status", json={"status": "in_progress"}, headers=admin_headers)
    resp = await client.patch(f"{url}/route-points/{first}/status",
                              json={"status": "completed", "collected_weight": 6}, headers=admin_headers)
    assert resp.json()["points_completed"] == 1

    resp = await client.put(url, json={"route": STOPS}, headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert [p["status"] for p in data["route"]] == ["pending"] * 4
    assert data["capacity_current"] == 0
    assert data["total_weight"] == 0
    assert data["points_completed"] == 0
    assert data["points_skipped"] == 0
    assert data["status"] == "scheduled"

    resp = await client.get(f"{url}/statistics", headers=admin_headers)
    assert resp.json()["completion_rate"] == 0


@pytest.mark.asyncio
async def test_cancelled_schedule_points_frozen(client, admin_headers):
    schedule = await create_schedule(client, admin_headers, route=STOPS[:1])
    url = f"{URL}/{schedule['id']}"
    point = schedule["route"][0]["id"]

    resp = await client.put(url, json={"status": "cancelled"}, headers=admin_headers)
    assert resp.status_code == 200

    resp = await client.patch(f"{url}/route-points/{point}/status", json={"status": "skipped"}, headers=admin_headers)
    assert resp.status_code == 400
    resp = await client.get(url, headers=admin_headers)
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["route"][0]["status"] == "pending"


@pytest.mark.asyncio
async def test_archive_schedule(client, admin_headers):
    schedule = await create_schedule(client, admin_headers)
    url = f"{URL}/{schedule['id']}"

    resp = await client.delete(url, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    resp = await client.get(URL, headers=admin_headers)
    assert resp.json()["schedules"] == []

    resp = await client.get(url, headers=admin_headers)
    assert resp.status_code == 200
    resp = await client.patch(f"{url}/optimize-route", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_route_points_with_products(client, admin_headers, alice_headers):
    resp = await client.post("/api/products/", json=product_payload(), headers=alice_headers)
    product_id = resp.json()["id"]

    stops = [{**STOPS[0], "product_ids": [product_id]}]
    schedule = await create_schedule(client, admin_headers, route=stops)
    assert schedule["route"][0]["product_ids"] == [product_id]

    resp = await client.post(URL, json=schedule_payload(route=[{**STOPS[0], "product_ids": [999]}]),
                             headers=admin_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_unknown_collector(client, admin_headers):
    resp = await client.post(URL, json=schedule_payload(collector_id=999), headers=admin_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_validate_material(client, admin_headers, alice_headers):
    resp = await client.post("/api/materials/", json={
        "name": "Madera recuperada",
        "category": "wood",
        "compaction_instructions": "Desarmar y apilar",
        "recycling_value": 0.2,
        "carbon_footprint_saved": 1.1,
        "standard_weight": 5,
        "min_weight": 1,
        "max_weight": 50,
    }, headers=admin_headers)
    material_id = resp.json()["id"]
    resp = await client.post("/api/products/", json=product_payload(), headers=alice_headers)
    product_id = resp.json()["id"]

    resp = await client.get("/api/municipal/materials/pending-validation", headers=admin_headers)
    assert resp.json()["pagination"]["total_items"] == 1

    resp = await client.post("/api/municipal/validate-material", json={
        "product_id": product_id,
        "validation_result": "validated",
        "material_id": material_id,
        "actual_weight": 20,
        "quality_score": 80,
    }, headers=admin_headers)
    assert resp.status_code == 200
    impact = resp.json()["environmental_impact"]
    assert impact["carbon_footprint_saved"] == pytest.approx(22)
    assert impact["equivalent_trees"] == pytest.approx(1)

    resp = await client.get(f"/api/products/{product_id}")
    data = resp.json()
    assert data["compaction_status"] == "validated"
    assert data["co2_reduction"] == pytest.approx(22)

    resp = await client.get("/api/municipal/analytics", params={"period": "7d"}, headers=admin_headers)
    summary = resp.json()["summary"]
    assert summary["total_products"] == 1
    assert summary["validated_materials"] == 1
    assert summary["validation_rate"] == 100

    resp = await client.get("/api/municipal/zones/stats", headers=admin_headers)
    zones = resp.json()["zones"]
    assert zones[0]["zone"] == "Centro"
    assert zones[0]["validation_rate"] == 100


@pytest.mark.asyncio
async def test_approve_producer(client, session_factory, admin_headers):
    producer = await create_user(session_factory, "granja@example.com", UserType.PRODUCER)
    headers = auth_headers(producer)

    resp = await client.post("/api/products/", json=product_payload(), headers=headers)
    assert resp.json()["status"] == "draft"

    resp = await client.get("/api/municipal/producers/pending", headers=admin_headers)
    producers = resp.json()["producers"]
    assert [p["id"] for p in producers] == [producer.id]
    assert producers[0]["stats"]["product_count"] == 1

    resp = await client.patch(f"/api/municipal/approve-producer/{producer.id}",
                              json={"approved": True, "notes": "Documentacion ok"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["products_activated"] == 1

    resp = await client.get("/api/products/")
    assert [p["status"] for p in resp.json()["products"]] == ["available"]

    resp = await client.get("/api/municipal/producers/pending", headers=admin_headers)
    assert resp.json()["producers"] == []


@pytest.mark.asyncio
async def test_approve_requires_producer(client, alice, admin_headers):
    resp = await client.patch(f"/api/municipal/approve-producer/{alice.id}", json={"approved": True},
                              headers=admin_headers)
    assert resp.status_code == 400
