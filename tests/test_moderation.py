"""Tests des signalements et de l'administration / Moderation report and admin tests."""

import pytest

from circulapp.models.user import UserType

from .conftest import create_user, product_payload


def report_payload(**overrides) -> dict:
    payload = {
        "report_type": "scam",
        "target_type": "product",
        "target_id": 1,
        "target_title": "Silla de madera",
        "description": "El vendedor pide dinero, es una estafa",
        "category": "behavior",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_file_report_classifies_severity(client, alice_headers):
    resp = await client.post("/api/reports/", json=report_payload(), headers=alice_headers)
    assert resp.status_code == 201
    data = resp.json()
    assert data["severity"] == "high"
    assert data["priority"] == "high"
    assert data["status"] == "pending"
    assert [e["action"] for e in data["timeline"]] == ["created"]
    assert data["similar_reports_count"] == 0

    resp = await client.post("/api/reports/", json=report_payload(
        report_type="violence_threat", description="Recibi una amenaza por mensaje privado",
    ), headers=alice_headers)
    data = resp.json()
    assert data["severity"] == "critical"
    assert data["priority"] == "urgent"
    assert data["similar_reports_count"] == 1


@pytest.mark.asyncio
async def test_report_description_too_short(client, alice_headers):
    resp = await client.post("/api/reports/", json=report_payload(description="malo"), headers=alice_headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_report_workflow(client, admin, alice, admin_headers, alice_headers):
    resp = await client.post("/api/reports/", json=report_payload(), headers=alice_headers)
    report_id = resp.json()["id"]
    url = f"/api/municipal/reports/{report_id}"

    resp = await client.get("/api/municipal/reports/", headers=alice_headers)
    assert resp.status_code == 403

    resp = await client.patch(f"{url}/assign", json={"assigned_to_id": alice.id}, headers=admin_headers)
    assert resp.status_code == 400

    resp = await client.patch(f"{url}/assign", json={"assigned_to_id": admin.id, "note": "Revisar fotos"},
                              headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "reviewing"
    assert data["assigned_to_id"] == admin.id
    assert data["response_time"] is not None
    assert [n["note"] for n in data["notes"]] == ["Revisar fotos"]

    resp = await client.patch(f"{url}/status", json={
        "status": "resolved",
        "resolution_summary": "Usuario advertido",
        "actions_taken": [{"action": "warning", "description": "Primera advertencia"}],
    }, headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "resolved"
    assert data["resolved_at"] is not None
    assert data["resolution_time"] is not None
    assert [a["action"] for a in data["actions_taken"]] == ["warning"]
    assert [e["action"] for e in data["timeline"]] == ["created", "assigned", "status_change", "status_change"]

    resp = await client.get("/api/municipal/reports/", params={"status": "resolved"}, headers=admin_headers)
    listing = resp.json()
    assert listing["pagination"]["total_items"] == 1
    assert listing["reports"][0]["summary"]["actions_taken"] == 1
    assert listing["stats"]["resolved"] == 1


@pytest.mark.asyncio
async def test_reports_sorted_by_priority(client, alice_headers, admin_headers):
    await client.post("/api/reports/", json=report_payload(description="No me gusta esta publicacion"),
                      headers=alice_headers)
    await client.post("/api/reports/", json=report_payload(description="Hay armas en la foto del producto"),
                      headers=alice_headers)

    resp = await client.get("/api/municipal/reports/", headers=admin_headers)
    assert [r["priority"] for r in resp.json()["reports"]] == ["urgent", "low"]


@pytest.mark.asyncio
async def test_admin_dashboard_and_users(client, session_factory, admin, alice, admin_headers, alice_headers):
    await create_user(session_factory, "granja@example.com", UserType.PRODUCER)
    await client.post("/api/products/", json=product_payload(), headers=alice_headers)

    resp = await client.get("/api/admin/dashboard", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["users"]["total"] == 3
    assert data["products"]["by_status"] == {"available": 1}
    assert data["pending_producers"] == 1

    resp = await client.get("/api/admin/users", params={"user_type": "producer"}, headers=admin_headers)
    assert [u["email"] for u in resp.json()["users"]] == ["granja@example.com"]

    resp = await client.patch(f"/api/admin/users/{admin.id}/status", json={"is_active": False},
                              headers=admin_headers)
    assert resp.status_code == 400

    resp = await client.patch(f"/api/admin/users/{alice.id}/status", json={"is_active": False, "reason": "spam"},
                              headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    resp = await client.get("/api/auth/me", headers=alice_headers)
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_admin_removes_reported_product(client, alice_headers, bob_headers, admin_headers):
    resp = await client.post("/api/products/", json=product_payload(), headers=alice_headers)
    product_id = resp.json()["id"]
    await client.post("/api/reports/", json=report_payload(target_id=product_id), headers=bob_headers)

    resp = await client.get("/api/admin/products/reported", headers=admin_headers)
    reported = resp.json()["products"]
    assert [(p["id"], p["open_reports"]) for p in reported] == [(product_id, 1)]

    resp = await client.delete(f"/api/admin/products/{product_id}", headers=admin_headers)
    assert resp.status_code == 200
    resp = await client.get(f"/api/products/{product_id}")
    assert resp.status_code == 404

    resp = await client.get("/api/admin/audit", params={"entity_type": "product"}, headers=admin_headers)
    assert [log["action"] for log in resp.json()["items"]] == ["REMOVE"]


@pytest.mark.asyncio
async def test_admin_routes_forbidden_for_users(client, alice_headers):
    resp = await client.get("/api/admin/dashboard", headers=alice_headers)
    assert resp.status_code == 403
