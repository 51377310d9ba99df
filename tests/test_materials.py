"""Tests du catalogue de matériaux / Material catalog tests."""

import pytest
from sqlalchemy import func, select

from circulapp.models.material import Material
from circulapp.models.user import User
from circulapp.utils.seed import STARTER_MATERIALS, seed_admin, seed_materials

from .conftest import product_payload


def material_payload(**overrides) -> dict:
    payload = {
        "name": "Botellas PET",
        "category": "plastic",
        "description": "Botellas plasticas de bebidas",
        "compaction_instructions": "Aplastar y tapar",
        "recycling_value": 0.5,
        "carbon_footprint_saved": 1.1,
        "standard_weight": 0.03,
        "min_weight": 1,
        "max_weight": 30,
    }
    payload.update(overrides)
    return payload


async def create_material(client, headers, **overrides) -> dict:
    resp = await client.post("/api/materials/", json=material_payload(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_create_material_admin_only(client, alice_headers, admin_headers):
    resp = await client.post("/api/materials/", json=material_payload(), headers=alice_headers)
    assert resp.status_code == 403

    material = await create_material(client, admin_headers)
    assert material["is_active"] is True
    assert material["approved_at"] is not None


@pytest.mark.asyncio
async def test_weight_range_rejected(client, admin_headers):
    resp = await client.post("/api/materials/", json=material_payload(min_weight=30, max_weight=30),
                             headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Minimum weight must be lower than maximum weight"

    material = await create_material(client, admin_headers)
    resp = await client.put(f"/api/materials/{material['id']}", json={"max_weight": 0.5}, headers=admin_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_update_material_rejects_null_required_fields(client, admin_headers):
    material = await create_material(client, admin_headers)
    url = f"/api/materials/{material['id']}"

    for field in ("min_weight", "max_weight", "name"):
        resp = await client.put(url, json={field: None}, headers=admin_headers)
        assert resp.status_code == 422

    resp = await client.put(url, json={"sub_category": None, "max_weight": 40}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["max_weight"] == 40
    assert resp.json()["min_weight"] == 1


@pytest.mark.asyncio
async def test_catalog_listing(client, admin_headers):
    await create_material(client, admin_headers)
    await create_material(client, admin_headers, name="Carton", category="paper", recycling_value=0.1,
                          description="Cajas de carton corrugado")

    resp = await client.get("/api/materials/")
    data = resp.json()
    assert data["pagination"]["total_items"] == 2
    assert {s["category"] for s in data["category_stats"]} == {"plastic", "paper"}

    resp = await client.get("/api/materials/", params={"category": "paper"})
    assert [m["name"] for m in resp.json()["materials"]] == ["Carton"]

    resp = await client.get("/api/materials/", params={"search": "botellas"})
    assert [m["name"] for m in resp.json()["materials"]] == ["Botellas PET"]


@pytest.mark.asyncio
async def test_calculate_impact(client, admin_headers):
    material = await create_material(client, admin_headers)
    url = f"/api/materials/{material['id']}/calculate-impact"

    resp = await client.post(url, json={"weight": 20})
    assert resp.status_code == 200
    data = resp.json()
    assert data["impact"]["carbon_footprint_saved"] == pytest.approx(22)
    assert data["impact"]["equivalent_trees"] == pytest.approx(1)
    assert data["impact"]["water_saved"] == pytest.approx(50)
    assert data["impact"]["energy_saved"] == pytest.approx(40)
    assert data["recommendations"]

    resp = await client.post(url, json={"weight": 0})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_deactivated_material_hidden(client, admin_headers):
    material = await create_material(client, admin_headers)
    resp = await client.delete(f"/api/materials/{material['id']}", headers=admin_headers)
    assert resp.status_code == 200

    resp = await client.get(f"/api/materials/{material['id']}")
    assert resp.status_code == 404
    resp = await client.get("/api/materials/")
    assert resp.json()["materials"] == []


@pytest.mark.asyncio
async def test_material_detail_usage(client, admin_headers):
    material = await create_material(client, admin_headers)
    resp = await client.get(f"/api/materials/{material['id']}")
    assert resp.status_code == 200
    assert resp.json()["usage_stats"]["total_products"] == 0

    resp = await client.get("/api/materials/admin/statistics", headers=admin_headers)
    assert resp.json()["environmental_metrics"]["total_materials"] == 1


@pytest.mark.asyncio
async def test_suggest_materials(client, admin_headers, alice_headers, bob_headers):
    await create_material(client, admin_headers)
    resp = await client.post("/api/products/", json=product_payload(
        title="Juguetes viejos", description="Juguetes plasticas para reciclar", category="toys",
    ), headers=alice_headers)
    product_id = resp.json()["id"]

    resp = await client.post("/api/materials/suggest", json={"product_id": product_id}, headers=bob_headers)
    assert resp.status_code == 403

    resp = await client.post("/api/materials/suggest", json={"product_id": product_id}, headers=alice_headers)
    assert resp.status_code == 200
    suggestions = resp.json()["suggested_materials"]
    assert [s["name"] for s in suggestions] == ["Botellas PET"]
    assert suggestions[0]["confidence"] == 85


@pytest.mark.asyncio
async def test_report_material_issue(client, admin_headers, alice_headers):
    material = await create_material(client, admin_headers)
    resp = await client.post(f"/api/materials/{material['id']}/report", json={
        "issue_type": "outdated_info",
        "description": "Las instrucciones de compactado cambiaron",
        "suggestion": "Agregar foto de ejemplo",
    }, headers=alice_headers)
    assert resp.status_code == 201

    resp = await client.get("/api/municipal/reports/", params={"report_type": "technical_issue"},
                            headers=admin_headers)
    reports = resp.json()["reports"]
    assert len(reports) == 1
    assert reports[0]["target_type"] == "material"
    assert reports[0]["notes"][0]["is_private"] is False


@pytest.mark.asyncio
async def test_seed_admin_and_materials(db):
    await seed_admin(db)
    await seed_materials(db)
    assert await db.scalar(select(func.count(Material.id))) == len(STARTER_MATERIALS)

    # Deuxième démarrage : rien de plus
    await seed_admin(db)
    await seed_materials(db)
    assert await db.scalar(select(func.count(User.id))) == 1
    assert await db.scalar(select(func.count(Material.id))) == len(STARTER_MATERIALS)
