"""Tests API / API tests (santé, authentification, profil)."""

import pytest

from circulapp.utils.auth import create_refresh_token

from .conftest import PASSWORD


@pytest.mark.asyncio
async def test_root(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "running"


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


@pytest.mark.asyncio
async def test_register_and_login(client):
    resp = await client.post("/api/auth/register", json={
        "name": "Lucia",
        "email": "Lucia@Example.com",
        "password": "secret123",
        "user_type": "producer",
    })
    assert resp.status_code == 201
    data = resp.json()
    assert data["user"]["email"] == "lucia@example.com"
    assert data["user"]["user_type"] == "producer"
    assert data["access_token"]

    resp = await client.post("/api/auth/login", json={"email": "lucia@example.com", "password": "secret123"})
    assert resp.status_code == 200
    token = resp.json()["access_token"]

    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Lucia"


@pytest.mark.asyncio
async def test_register_duplicate_email(client, alice):
    resp = await client.post("/api/auth/register", json={
        "name": "Alice bis", "email": "alice@example.com", "password": "secret123",
    })
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_register_cannot_choose_comuna(client):
    resp = await client.post("/api/auth/register", json={
        "name": "Mallory", "email": "mallory@example.com", "password": "secret123", "user_type": "comuna",
    })
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_login_wrong_password(client, alice):
    resp = await client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_is_audited(client, alice, admin_headers):
    await client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope"})
    await client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})

    resp = await client.get("/api/admin/audit", params={"entity_type": "auth"}, headers=admin_headers)
    assert resp.status_code == 200
    actions = [log["action"] for log in resp.json()["items"]]
    assert "LOGIN_FAILED" in actions
    assert "LOGIN" in actions


@pytest.mark.asyncio
async def test_refresh_token(client, alice, alice_headers):
    resp = await client.post("/api/auth/refresh", json={"refresh_token": create_refresh_token(alice.id)})
    assert resp.status_code == 200
    assert resp.json()["refresh_token"]

    # Un access token n'est pas un refresh token
    access = alice_headers["Authorization"].split()[1]
    resp = await client.post("/api/auth/refresh", json={"refresh_token": access})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_me_requires_token(client):
    resp = await client.get("/api/auth/me")
    assert resp.status_code in (401, 403)
    resp = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_profile_and_password(client, alice_headers):
    resp = await client.put("/api/users/profile", json={"city": "Rosario"}, headers=alice_headers)
    assert resp.status_code == 200
    assert resp.json()["city"] == "Rosario"

    resp = await client.get("/api/users/profile", headers=alice_headers)
    assert resp.status_code == 200
    assert resp.json()["stats"]["total_products"] == 0

    resp = await client.put("/api/users/change-password", json={
        "current_password": "wrong-one", "new_password": "newsecret1", "confirm_password": "newsecret1",
    }, headers=alice_headers)
    assert resp.status_code == 400

    resp = await client.put("/api/users/change-password", json={
        "current_password": PASSWORD, "new_password": "newsecret1", "confirm_password": "newsecret1",
    }, headers=alice_headers)
    assert resp.status_code == 200

    resp = await client.post("/api/auth/login", json={"email": "alice@example.com", "password": "newsecret1"})
    assert resp.status_code == 200
