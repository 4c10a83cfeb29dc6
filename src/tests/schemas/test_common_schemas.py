"""Test response envelopes and shared schemas."""

import re
import uuid

from inkwell.repositories.pagination import PaginatedResult, PaginationMeta
from inkwell.schemas.common import (
    PaginatedResponse,
    error_envelope,
    iso_now,
    status_phrase,
    success_envelope,
)
from inkwell.schemas.post import PostRef

ISO_MILLIS = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def test_iso_now_format() -> None:
    assert ISO_MILLIS.match(iso_now())


def test_status_phrase() -> None:
    assert status_phrase(404) == "Not Found"
    assert status_phrase(599) == "Unknown Status"


def test_success_envelope_dumps_models_by_alias() -> None:
    ref = PostRef(id=uuid.UUID(int=1), slug="hello")

    body = success_envelope([ref], status_code=201)

    assert body["error"] is False
    assert body["message"] == "Created"
    assert body["data"] == [{"id": str(uuid.UUID(int=1)), "slug": "hello"}]


def test_error_envelope_without_details() -> None:
    body = error_envelope(401, "Invalid credentials", "/auth/login")

    assert body["error"] is True
    assert body["message"] == "Unauthorized"
    assert body["data"]["statusCode"] == 401
    assert body["data"]["path"] == "/auth/login"
    assert "errors" not in body["data"]


def test_error_envelope_with_details() -> None:
    errors = [{"field": "email", "message": "required", "type": "missing"}]

    body = error_envelope(400, "Validation failed", "/users", errors)

    assert body["data"]["errors"] == errors


def test_paginated_response_from_result() -> None:
    result = PaginatedResult(
        data=[PostRef(id=uuid.UUID(int=2), slug="a")],
        pagination=PaginationMeta.build(total=21, page=2, limit=10),
    )

    response = PaginatedResponse.from_result(result, PostRef)
    dumped = response.model_dump(mode="json", by_alias=True)

    assert dumped["data"][0]["slug"] == "a"
    assert dumped["pagination"]["totalPages"] == 3
    assert dumped["pagination"]["hasNext"] is True
