"""
Tests for authentication endpoints: registration, login and profile.
"""

import pytest
from httpx import AsyncClient

from booking_api.core.config import get_settings
from booking_api.core.security import decode_access_token


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Successful registration returns a token and the user."""
    response = await client.post("/api/v1/auth/register", json={
        "name": "New User",
        "email": "new@example.com",
        "password": "securepassword123",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["email"] == "new@example.com"
    assert user["role"] == "user"
    assert "hashed_password" not in user  # Never expose password hash
    assert decode_access_token(body["data"]["access_token"])["sub"] == str(user["id"])


@pytest.mark.asyncio
async def test_register_organizer(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={
        "name": "Org",
        "email": "org@example.com",
        "password": "securepassword123",
        "role": "organizer",
    })
    assert response.status_code == 201
    assert response.json()["data"]["user"]["role"] == "organizer"


@pytest.mark.asyncio
async def test_register_cannot_self_assign_admin(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={
        "name": "Sneaky",
        "email": "sneaky@example.com",
        "password": "securepassword123",
        "role": "admin",
    })
    assert response.status_code == 422
    assert response.json()["kind"] == "invalid_input"


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, test_user):
    """Duplicate email returns 409."""
    response = await client.post("/api/v1/auth/register", json={
        "name": "Someone Else",
        "email": "test@example.com",
        "password": "securepassword123",
    })
    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "kind": "conflict",
        "message": "User already exists with this email",
    }


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    """Password under 6 chars returns 422."""
    response = await client.post("/api/v1/auth/register", json={
        "name": "Weak",
        "email": "weak@example.com",
        "password": "short",
    })
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["kind"] == "invalid_input"
    assert body["errors"]


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, test_user):
    """Valid credentials return JWT token."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "test@example.com",
        "password": "testpassword123",
    })
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["user"]["id"] == test_user.id
    assert decode_access_token(data["access_token"])["role"] == "user"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, test_user):
    """Wrong password returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "test@example.com",
        "password": "wrongpassword",
    })
    assert response.status_code == 401
    assert response.json()["kind"] == "unauthorized"


@pytest.mark.asyncio
async def test_login_nonexistent_email(client: AsyncClient, database):
    """Non-existent email returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "nobody@example.com",
        "password": "anypassword123",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_inactive_user(client: AsyncClient, make_user):
    await make_user(email="gone@example.com", is_active=False)
    response = await client.post("/api/v1/auth/login", json={
        "email": "gone@example.com",
        "password": "testpassword123",
    })
    assert response.status_code == 403
    assert response.json()["kind"] == "forbidden"


@pytest.mark.asyncio
async def test_admin_login_rejects_regular_user(client: AsyncClient, test_user, admin):
    response = await client.post("/api/v1/auth/admin/login", json={
        "email": "test@example.com",
        "password": "testpassword123",
    })
    assert response.status_code == 403

    response = await client.post("/api/v1/auth/admin/login", json={
        "email": "admin@example.com",
        "password": "testpassword123",
    })
    assert response.status_code == 200
    assert response.json()["data"]["user"]["role"] == "admin"


@pytest.mark.asyncio
async def test_register_admin_requires_key(client: AsyncClient, database):
    payload = {"name": "Boss", "email": "boss@example.com", "password": "securepassword123"}

    response = await client.post("/api/v1/auth/register-admin", json=payload)
    assert response.status_code == 403

    response = await client.post(
        "/api/v1/auth/register-admin", json=payload, headers={"X-Admin-Key": "wrong"}
    )
    assert response.status_code == 403

    response = await client.post(
        "/api/v1/auth/register-admin",
        json=payload,
        headers={"X-Admin-Key": get_settings().ADMIN_REGISTRATION_KEY},
    )
    assert response.status_code == 201
    assert response.json()["data"]["user"]["role"] == "admin"


@pytest.mark.asyncio
async def test_profile(client: AsyncClient, test_user, auth_headers):
    response = await client.get("/api/v1/auth/profile", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "test@example.com"


@pytest.mark.asyncio
async def test_profile_requires_token(client: AsyncClient, database):
    response = await client.get("/api/v1/auth/profile")
    assert response.status_code == 401
    assert response.json()["kind"] == "unauthorized"

    response = await client.get("/api/v1/auth/profile", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
