"""API tests for POST /api/change-password."""
import pytest
from httpx import ASGITransport, AsyncClient

from backoffice.config import get_settings
from backoffice.dependencies import PASSWORD_CHANGE_RATE_LIMIT_MESSAGE
from tests.conftest import DEFAULT_PASSWORD


@pytest.mark.asyncio
async def test_missing_fields_answer_400(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        response = await client.post("/api/change-password", json={"email": "missing-fields@la777.test"})

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Email, current password and new password are required",
    }


@pytest.mark.asyncio
async def test_wrong_current_password(test_app, staff_factory):
    staff = await staff_factory()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        response = await client.post(
            "/api/change-password",
            json={"email": staff.email, "currentPassword": "wrong-one", "newPassword": "NewPass456"},
        )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Current password is incorrect"}


@pytest.mark.asyncio
async def test_unknown_user(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        response = await client.post(
            "/api/change-password",
            json={"email": "ghost@la777.test", "currentPassword": "whatever", "newPassword": "NewPass456"},
        )

    assert response.status_code == 400
    assert response.json()["error"] == "User not found"


@pytest.mark.asyncio
async def test_successful_change_allows_login_with_new_password(test_app, staff_factory):
    staff = await staff_factory()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        response = await client.post(
            "/api/change-password",
            json={"email": staff.email, "current_password": DEFAULT_PASSWORD, "new_password": "NewPass456"},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Password changed successfully"}

        old_login = await client.post("/auth/login", json={"email": staff.email, "password": DEFAULT_PASSWORD})
        new_login = await client.post("/auth/login", json={"email": staff.email, "password": "NewPass456"})

    assert old_login.status_code == 401
    assert old_login.json()["success"] is False
    assert new_login.status_code == 200
    assert new_login.json()["staff"]["staff_id"] == str(staff.staff_id)


@pytest.mark.asyncio
async def test_attempts_are_rate_limited_per_email(test_app, staff_factory):
    staff = await staff_factory()
    limit = get_settings().password_change_rate_limit
    body = {"email": staff.email, "currentPassword": "wrong-one", "newPassword": "NewPass456"}

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        for _ in range(limit):
            response = await client.post("/api/change-password", json=body)
            assert response.status_code == 400

        limited = await client.post("/api/change-password", json=body)

    assert limited.status_code == 429
    assert limited.json() == {"success": False, "error": PASSWORD_CHANGE_RATE_LIMIT_MESSAGE}
    assert int(limited.headers["Retry-After"]) > 0
