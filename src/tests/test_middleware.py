"""Tests for request ID middleware."""
import uuid
from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from inkwell.core.middleware import (
    REQUEST_ID_HEADER,
    RequestIDMiddleware,
    get_request_id,
    request_id_var,
)


class TestRequestIDMiddleware:
    """Test suite for RequestIDMiddleware."""

    @pytest.fixture
    def app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(RequestIDMiddleware)

        @app.get("/posts")
        async def list_posts() -> dict[str, str]:
            return {"request_id": get_request_id()}

        @app.post("/posts")
        async def create_post(request: Request) -> dict[str, object]:
            body = await request.json()
            return {"echoed": body, "request_id": get_request_id()}

        @app.get("/boom")
        async def boom() -> None:
            raise ValueError("storage offline")

        return app

    @pytest.fixture
    def client(self, app: FastAPI) -> TestClient:
        return TestClient(app)

    def test_generated_id_is_uuid4(self, client: TestClient) -> None:
        response = client.get("/posts")

        assert response.status_code == 200
        assert uuid.UUID(response.headers["x-request-id"]).version == 4

    def test_incoming_id_is_reused(self, client: TestClient) -> None:
        response = client.get("/posts", headers={REQUEST_ID_HEADER: "upstream-123"})

        assert response.headers["x-request-id"] == "upstream-123"
        assert response.json()["request_id"] == "upstream-123"

    def test_malformed_incoming_id_is_replaced(self, client: TestClient) -> None:
        response = client.get("/posts", headers={REQUEST_ID_HEADER: "bad id with spaces"})

        assert uuid.UUID(response.headers["x-request-id"]).version == 4

    def test_ids_are_unique_and_match_context(self, client: TestClient) -> None:
        responses = [client.get("/posts") for _ in range(5)]

        request_ids = [r.headers["x-request-id"] for r in responses]
        assert len(set(request_ids)) == 5
        for response in responses:
            assert response.json()["request_id"] == response.headers["x-request-id"]

    def test_post_requests(self, client: TestClient) -> None:
        response = client.post("/posts", json={"content": "hello"})

        assert response.json()["echoed"] == {"content": "hello"}
        assert response.json()["request_id"] == response.headers["x-request-id"]

    def test_not_found_still_tagged(self, client: TestClient) -> None:
        response = client.get("/nope")

        assert response.status_code == 404
        assert "x-request-id" in response.headers

    @patch("inkwell.core.middleware.logger")
    def test_lifecycle_logged(self, mock_logger: MagicMock, client: TestClient) -> None:
        response = client.get("/posts?page=2&limit=5")

        mock_logger.info.assert_any_call(
            "Request started",
            method="GET",
            path="/posts",
            query_params="page=2&limit=5",
        )
        completed = [c for c in mock_logger.info.call_args_list if c[0][0] == "Request completed"]
        assert len(completed) == 1
        assert completed[0][1]["status_code"] == response.status_code
        assert completed[0][1]["duration_ms"] >= 0

    @patch("inkwell.core.middleware.logger")
    def test_failure_logged(self, mock_logger: MagicMock, client: TestClient) -> None:
        with pytest.raises(ValueError, match="storage offline"):
            client.get("/boom")

        mock_logger.error.assert_called_once()
        args, kwargs = mock_logger.error.call_args
        assert args[0] == "Request failed"
        assert kwargs["error"] == "storage offline"
        assert kwargs["error_type"] == "ValueError"

    @patch("inkwell.core.middleware.structlog.contextvars.bind_contextvars")
    def test_id_bound_to_log_context(self, mock_bind: MagicMock, client: TestClient) -> None:
        response = client.get("/posts")

        mock_bind.assert_called_once_with(request_id=response.headers["x-request-id"])

    @patch("inkwell.core.middleware.structlog.contextvars.clear_contextvars")
    def test_log_context_cleared_on_error(self, mock_clear: MagicMock, client: TestClient) -> None:
        with pytest.raises(ValueError):
            client.get("/boom")

        mock_clear.assert_called_once()

    def test_get_request_id_outside_request(self) -> None:
        request_id_var.set("")

        assert get_request_id() == ""
