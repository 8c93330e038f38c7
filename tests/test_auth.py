"""Tests for login, token refresh, logout and password management"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from hms_api.config import settings
from hms_api.models.user import User
from hms_api.services.tokens import create_refresh_token, verify_access

from tests.conftest import auth_headers


async def login(client: AsyncClient, email: str, password: str):
    return await client.post("/auth/login", json={"email": email, "password": password})


@pytest.mark.asyncio
async def test_login_master_admin(client: AsyncClient, master_admin):
    """Default Master Admin logs in with role and token pair"""
    response = await login(client, "admin@admin.com", "Admin@123")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Login successful"

    user = body["data"]["user"]
    assert user["user_type"] == "MASTER_ADMIN"
    assert [role["name"] for role in user["roles"]] == ["Master Admin"]
    assert "password_hash" not in user
    assert "refresh_token" not in user

    tokens = body["data"]["tokens"]
    assert set(tokens) == {"accessToken", "refreshToken"}
    assert verify_access(tokens["accessToken"]).sub == master_admin.id


@pytest.mark.asyncio
async def test_login_sets_last_login(client: AsyncClient, test_db, master_admin):
    """Successful login records the login time"""
    await login(client, "admin@admin.com", "Admin@123")
    await test_db.refresh(master_admin)
    assert master_admin.last_login is not None


@pytest.mark.asyncio
async def test_login_failures_are_generic(client: AsyncClient, master_admin):
    """Wrong password and unknown email fail the same way"""
    wrong_password = await login(client, "admin@admin.com", "Wrong@123")
    unknown_email = await login(client, "nobody@admin.com", "Admin@123")

    for response in (wrong_password, unknown_email):
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid email or password"}


@pytest.mark.asyncio
async def test_login_inactive_user(client: AsyncClient, test_db, staff_user):
    """Deactivated accounts cannot log in"""
    staff_user.is_active = False
    await test_db.commit()

    response = await login(client, "frontdesk@grandpalace.com", "Staff@1234")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_validation_error(client: AsyncClient):
    """Malformed login body returns the validation envelope"""
    response = await client.post("/auth/login", json={"email": "not-an-email"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation error"
    fields = {error["field"] for error in body["errors"]}
    assert {"email", "password"} <= fields


@pytest.mark.asyncio
async def test_refresh_rotates_tokens(client: AsyncClient, master_admin):
    """A refresh token works once; the rotated one replaces it"""
    tokens = (await login(client, "admin@admin.com", "Admin@123")).json()["data"]["tokens"]

    response = await client.post("/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert response.status_code == 200
    rotated = response.json()["data"]["tokens"]
    assert rotated["refreshToken"] != tokens["refreshToken"]
    assert verify_access(rotated["accessToken"]).sub == master_admin.id

    # Old token is spent
    reused = await client.post("/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert reused.status_code == 401
    assert reused.json()["message"] == "Invalid refresh token"

    # New token still works
    again = await client.post("/auth/refresh-token", json={"refreshToken": rotated["refreshToken"]})
    assert again.status_code == 200


@pytest.mark.asyncio
async def test_refresh_rejects_unstored_token(client: AsyncClient, master_admin):
    """A validly signed refresh token that is not the stored one is rejected"""
    await login(client, "admin@admin.com", "Admin@123")
    stray = create_refresh_token(master_admin)

    response = await client.post("/auth/refresh-token", json={"refreshToken": stray})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid refresh token"


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(client: AsyncClient, master_admin):
    """Access tokens cannot be used to refresh"""
    tokens = (await login(client, "admin@admin.com", "Admin@123")).json()["data"]["tokens"]

    response = await client.post("/auth/refresh-token", json={"refreshToken": tokens["accessToken"]})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_refresh_rejects_inactive_user(client: AsyncClient, test_db, staff_user):
    """Deactivation stops refresh even with the stored token"""
    tokens = (await login(client, "frontdesk@grandpalace.com", "Staff@1234")).json()["data"]["tokens"]

    staff_user.is_active = False
    await test_db.commit()

    response = await client.post("/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid refresh token"


@pytest.mark.asyncio
async def test_profile_requires_token(client: AsyncClient):
    """Profile without a bearer token is rejected"""
    response = await client.get("/auth/profile")

    assert response.status_code == 401
    assert response.json()["message"] == "Access token is required"
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_profile_rejects_bad_token(client: AsyncClient):
    response = await client.get("/auth/profile", headers={"Authorization": "Bearer not.a.token"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_profile_rejects_inactive_user(client: AsyncClient, test_db, staff_user):
    """Tokens stop working once the account is deactivated"""
    headers = auth_headers(staff_user)
    staff_user.is_active = False
    await test_db.commit()

    response = await client.get("/auth/profile", headers=headers)
    assert response.status_code == 401
    assert response.json()["message"] == "User not found or inactive"


@pytest.mark.asyncio
async def test_profile(admin_client: AsyncClient, master_admin):
    """Profile returns the caller"""
    response = await admin_client.get("/auth/profile")

    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["id"] == master_admin.id
    assert user["email"] == "admin@admin.com"


@pytest.mark.asyncio
async def test_logout_is_idempotent(client: AsyncClient, master_admin):
    """Logging out twice succeeds and revokes the refresh token"""
    tokens = (await login(client, "admin@admin.com", "Admin@123")).json()["data"]["tokens"]
    headers = {"Authorization": f"Bearer {tokens['accessToken']}"}

    first = await client.post("/auth/logout", headers=headers)
    second = await client.post("/auth/logout", headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["message"] == "Logged out successfully"

    response = await client.post("/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, master_admin):
    """Password change re-hashes and revokes the refresh token"""
    tokens = (await login(client, "admin@admin.com", "Admin@123")).json()["data"]["tokens"]
    headers = {"Authorization": f"Bearer {tokens['accessToken']}"}

    response = await client.patch(
        "/auth/password",
        json={"currentPassword": "Admin@123", "newPassword": "NewAdmin@456"},
        headers=headers,
    )
    assert response.status_code == 200

    assert (await login(client, "admin@admin.com", "Admin@123")).status_code == 401
    assert (await client.post(
        "/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]}
    )).status_code == 401
    assert (await login(client, "admin@admin.com", "NewAdmin@456")).status_code == 200


@pytest.mark.asyncio
async def test_change_password_alias(admin_client: AsyncClient):
    """PUT /auth/change-password behaves like PATCH /auth/password"""
    response = await admin_client.put(
        "/auth/change-password",
        json={"currentPassword": "Admin@123", "newPassword": "Changed@789"},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current(admin_client: AsyncClient):
    response = await admin_client.patch(
        "/auth/password",
        json={"currentPassword": "Wrong@123", "newPassword": "NewAdmin@456"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Current password is incorrect"


@pytest.mark.asyncio
async def test_change_password_weak_new(admin_client: AsyncClient):
    """New password must meet strength rules"""
    response = await admin_client.patch(
        "/auth/password",
        json={"currentPassword": "Admin@123", "newPassword": "password"},
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "newPassword"


@pytest.mark.asyncio
async def test_reset_system_requires_confirmation(client: AsyncClient, master_admin):
    response = await client.post("/auth/reset-system", json={"confirm_reset": "yes"})

    assert response.status_code == 400
    assert response.json()["required_confirmation"] == "YES_DELETE_ALL_USERS"


@pytest.mark.asyncio
async def test_reset_system_deletes_users(client: AsyncClient, test_db, master_admin, staff_user):
    """Reset removes every user and reopens registration"""
    response = await client.post("/auth/reset-system", json={"confirm_reset": "YES_DELETE_ALL_USERS"})
    assert response.status_code == 200

    count = (await test_db.execute(select(func.count(User.id)))).scalar()
    assert count == 0

    response = await client.post("/auth/register", json={
        "full_name": "New Owner",
        "email": "owner@newhotel.com",
        "password": "Owner@1234",
        "user_type": "MASTER_ADMIN",
    })
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_reset_system_disabled_in_production(client: AsyncClient, master_admin, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")

    response = await client.post("/auth/reset-system", json={"confirm_reset": "YES_DELETE_ALL_USERS"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope(client: AsyncClient):
    response = await client.get("/does-not-exist")

    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
