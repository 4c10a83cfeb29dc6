"""Request ID middleware for log correlation and tracing."""
import re
import time
import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from typing import Any

import structlog
from fastapi import Request, Response
from opentelemetry.trace.status import Status, StatusCode
from starlette.middleware.base import BaseHTTPMiddleware

from inkwell.core.logging import get_logger
from inkwell.core.tracing import create_span, get_tracer

REQUEST_ID_HEADER = "X-Request-ID"

# Ids accepted from upstream proxies; anything else is replaced
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

logger = get_logger(__name__)
tracer = get_tracer(__name__)


def resolve_request_id(incoming: str | None) -> str:
    """Reuse a well-formed incoming id, otherwise mint a UUID4."""
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id and log its lifecycle.

    The id is bound into structlog's contextvars for the duration of the
    request, echoed in the ``X-Request-ID`` response header and attached to
    the request span when tracing is enabled.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request_id_var.set(request_id)
        structlog.contextvars.bind_contextvars(request_id=request_id)

        attributes: dict[str, Any] = {
            "http.method": request.method,
            "http.route": request.url.path,
            "request.id": request_id,
            "user_agent.original": request.headers.get("user-agent", ""),
        }
        start = time.perf_counter()
        try:
            with create_span(tracer, f"{request.method} {request.url.path}", **attributes) as span:
                logger.info(
                    "Request started",
                    method=request.method,
                    path=request.url.path,
                    query_params=str(request.query_params) if request.query_params else None,
                )
                try:
                    response = await call_next(request)
                except Exception as exc:
                    duration_ms = _elapsed_ms(start)
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    logger.error(
                        "Request failed",
                        error=str(exc),
                        error_type=type(exc).__name__,
                        duration_ms=duration_ms,
                        exc_info=True,
                    )
                    raise

                duration_ms = _elapsed_ms(start)
                response.headers[REQUEST_ID_HEADER] = request_id
                span.set_attribute("http.status_code", response.status_code)
                span.set_status(
                    Status(StatusCode.ERROR, f"HTTP {response.status_code}")
                    if response.status_code >= 500
                    else Status(StatusCode.OK)
                )
                logger.info("Request completed", status_code=response.status_code, duration_ms=duration_ms)
                return response
        finally:
            structlog.contextvars.clear_contextvars()


def get_request_id() -> str:
    """Return the current request id, or an empty string outside a request."""
    return request_id_var.get("")
