"""
Integration tests for the authentication flow.

Register -> Login -> Me -> Logout, plus role rules.
"""

import pytest


async def register(client, username, role=None, password="password123"):
    payload = {
        "email": f"{username}@test.com",
        "username": username,
        "password": password,
    }
    if role:
        payload["role"] = role
    return await client.post("/v1/auth/register", json=payload)


@pytest.mark.asyncio
async def test_admin_registration_blocked(client):
    """ADMIN role cannot be created via API."""
    response = await register(client, "admin", role="ADMIN")
    assert response.status_code == 403
    assert "Admin users cannot be registered" in response.json()["message"]


@pytest.mark.asyncio
async def test_register_defaults_to_rider(client):
    response = await register(client, "newrider")
    assert response.status_code == 201
    data = response.json()
    assert data["role"] == "RIDER"
    
    me = await client.get("/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "newrider"


@pytest.mark.asyncio
async def test_driver_can_self_register(client):
    response = await register(client, "newdriver", role="DRIVER")
    assert response.status_code == 201
    assert response.json()["role"] == "DRIVER"


@pytest.mark.asyncio
async def test_duplicate_username_rejected(client):
    assert (await register(client, "dupe")).status_code == 201
    response = await client.post("/v1/auth/register", json={
        "email": "other@test.com", "username": "dupe", "password": "password123"
    })
    assert response.status_code == 400
    assert response.json()["message"] == "Username already registered"


@pytest.mark.asyncio
async def test_password_over_72_bytes_rejected(client):
    response = await register(client, "longpass", password="x" * 73)
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_login_with_username_or_email(client):
    await register(client, "loginuser")
    
    by_name = await client.post("/v1/auth/login", json={"username": "loginuser", "password": "password123"})
    by_email = await client.post("/v1/auth/login", json={"username": "loginuser@test.com", "password": "password123"})
    
    assert by_name.status_code == 200
    assert by_email.status_code == 200
    assert by_email.json()["user_id"] == by_name.json()["user_id"]


@pytest.mark.asyncio
async def test_login_wrong_password(client):
    await register(client, "loginuser")
    response = await client.post("/v1/auth/login", json={"username": "loginuser", "password": "nope-nope"})
    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_UNAUTHORIZED"


@pytest.mark.asyncio
async def test_logout_revokes_token(client, rider_headers):
    headers = rider_headers
    
    response = await client.post("/v1/auth/logout", headers=headers)
    assert response.status_code == 200
    
    response = await client.get("/v1/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["message"] == "Token has been revoked"


@pytest.mark.asyncio
async def test_missing_token_rejected(client):
    response = await client.get("/v1/auth/me")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_role_guard_blocks_rider_from_driver_api(client, rider_headers):
    response = await client.get("/v1/driver/assignments", headers=rider_headers)
    assert response.status_code == 403
