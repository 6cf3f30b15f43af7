"""Tests for the schema bootstrap endpoint."""

from unittest.mock import AsyncMock, patch

from httpx import AsyncClient

from api.config import get_settings

AUTH = {"Authorization": "Bearer setup-token"}


async def test_creates_schema_with_valid_token(client: AsyncClient) -> None:
    with patch("api.routers.setup.create_schema", new=AsyncMock()) as create_schema:
        response = await client.post("/api/db-setup", headers=AUTH)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["message"] == "Database schema is ready"
    create_schema.assert_awaited_once()


async def test_rejects_missing_or_wrong_token(client: AsyncClient) -> None:
    with patch("api.routers.setup.create_schema", new=AsyncMock()) as create_schema:
        for headers in ({}, {"Authorization": "Bearer wrong"}, {"Authorization": "setup-token"}):
            response = await client.post("/api/db-setup", headers=headers)

            assert response.status_code == 401
            assert response.json()["error"] == {
                "code": "authentication_error",
                "message": "Unauthorized",
            }

    create_schema.assert_not_awaited()


async def test_reports_schema_failure(client: AsyncClient) -> None:
    failing = AsyncMock(side_effect=OSError("connection refused"))

    with patch("api.routers.setup.create_schema", new=failing):
        response = await client.post("/api/db-setup", headers=AUTH)

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "db_setup_failed"
    assert error["details"] == {"error": "OSError: connection refused"}


async def test_unconfigured_token_rejects_everything(client: AsyncClient) -> None:
    from api.main import app

    unconfigured = get_settings().model_copy(update={"db_setup_token": None})
    app.dependency_overrides[get_settings] = lambda: unconfigured
    try:
        with patch("api.routers.setup.create_schema", new=AsyncMock()) as create_schema:
            response = await client.post("/api/db-setup", headers=AUTH)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401
    create_schema.assert_not_awaited()
