"""Test the application shell: health check and error envelopes."""
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel, Field

from inkwell.core.config import settings
from inkwell.core.exceptions import ConflictError, NotFoundError
from inkwell.main import SERVICE_NAME, create_app


class DraftIn(BaseModel):
    content: str = Field(min_length=1)
    tags: list[str] = []


@pytest.fixture
def shell_app() -> FastAPI:
    """Application with a few routes that fail in known ways."""
    app = create_app()

    @app.get("/_missing")
    async def missing() -> None:
        raise NotFoundError("Post")

    @app.get("/_conflict")
    async def conflict() -> None:
        raise ConflictError("Post with this slug already exists")

    @app.post("/_drafts")
    async def drafts(body: DraftIn) -> dict[str, str]:
        return {"content": body.content}

    @app.get("/_crash")
    async def crash() -> None:
        raise RuntimeError("boom")

    return app


@pytest_asyncio.fixture
async def client(shell_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=shell_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestHealth:
    """Test the /health endpoint."""

    async def test_healthy(self, client: AsyncClient) -> None:
        with patch("inkwell.main.check_database_connection", new_callable=AsyncMock) as mock_db:
            mock_db.return_value = True
            response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == SERVICE_NAME
        assert data["version"] == settings.app_version
        assert data["timestamp"].endswith("Z")
        database = data["checks"]["database"]
        assert database["status"] == "healthy"
        assert database["response_time_ms"] >= 0
        assert database["timestamp"].endswith("Z")

    async def test_degraded(self, client: AsyncClient) -> None:
        with patch("inkwell.main.check_database_connection", new_callable=AsyncMock) as mock_db:
            mock_db.return_value = False
            response = await client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"]["status"] == "unhealthy"

    async def test_request_id_header(self, client: AsyncClient) -> None:
        with patch("inkwell.main.check_database_connection", new_callable=AsyncMock) as mock_db:
            mock_db.return_value = True
            response = await client.get("/health")

        assert "x-request-id" in response.headers


class TestErrorEnvelope:
    """Test that every failure is wrapped the same way."""

    async def test_app_error(self, client: AsyncClient) -> None:
        response = await client.get("/_missing")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] is True
        assert body["message"] == "Not Found"
        assert body["data"]["message"] == "Post not found"
        assert body["data"]["statusCode"] == 404
        assert body["data"]["path"] == "/_missing"
        assert body["data"]["timestamp"].endswith("Z")
        assert "errors" not in body["data"]

    async def test_conflict(self, client: AsyncClient) -> None:
        response = await client.get("/_conflict")

        assert response.status_code == 409
        assert response.json()["message"] == "Conflict"

    async def test_validation_error(self, client: AsyncClient) -> None:
        response = await client.post("/_drafts", json={"content": "", "tags": "nope"})

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Bad Request"
        assert body["data"]["message"] == "Validation failed"
        fields = {error["field"] for error in body["data"]["errors"]}
        assert fields == {"content", "tags"}

    async def test_unhandled_error(self, client: AsyncClient) -> None:
        response = await client.get("/_crash")

        assert response.status_code == 500
        body = response.json()
        assert body["data"]["message"] == "Internal server error"
        assert "boom" not in response.text
