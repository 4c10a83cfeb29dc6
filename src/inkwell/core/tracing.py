"""OpenTelemetry configuration and span helpers.

Tracing is off under pytest and when ``OTEL_ENABLED`` is false; every helper
here then degrades to a no-op so call sites never branch on it.
"""
import functools
import os
from typing import Any, Callable, Optional, TypeVar

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace.status import Status, StatusCode

from inkwell.core.config import settings

F = TypeVar("F", bound=Callable[..., Any])

# Attributes derived from the call itself, e.g. the repository's table
AttributeHook = Callable[[tuple[Any, ...]], dict[str, Any]]


def is_tracing_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST") or settings.environment == "testing":
        return False
    return settings.otel_enabled


def configure_tracing() -> None:
    """Install the OTLP exporter as the global tracer provider."""
    if not is_tracing_enabled():
        return

    resource = Resource.create({
        "service.name": settings.otel_service_name,
        "service.version": settings.app_version,
        "service.namespace": "inkwell",
        "deployment.environment": settings.environment,
    })
    provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.otel_sample_ratio)),
    )
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(
                endpoint=settings.otel_exporter_otlp_endpoint,
                insecure=not settings.is_production,
            )
        )
    )
    trace.set_tracer_provider(provider)


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def instrument_fastapi_app(app: Any) -> None:
    if is_tracing_enabled():
        FastAPIInstrumentor.instrument_app(app, excluded_urls="/health")


def _set_attributes(span: Any, attributes: dict[str, Any]) -> None:
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, str(value))


def create_span(tracer: trace.Tracer, name: str, **attributes: Any) -> Any:
    """Start a span usable as a context manager, or a no-op stand-in."""
    if not is_tracing_enabled():
        return _NoOpSpan()

    span = tracer.start_span(name)
    _set_attributes(span, attributes)
    return span


def trace_async(
    span_name: Optional[str] = None,
    tracer_name: Optional[str] = None,
    attribute_hook: Optional[AttributeHook] = None,
    **span_attributes: Any,
) -> Callable[[F], F]:
    """Wrap a coroutine function in a span.

    Args:
        span_name: Span name (default: ``module.function``)
        tracer_name: Tracer name (default: the function's module)
        attribute_hook: Called with the positional call arguments; its
            result is added to the span attributes
        **span_attributes: Static span attributes

    Example:
        @trace_async("auth.login", component="auth")
        async def login(self, data): ...
    """
    def decorator(func: F) -> F:
        if not is_tracing_enabled():
            return func

        name = span_name or f"{func.__module__}.{func.__name__}"

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(tracer_name or func.__module__)
            with tracer.start_as_current_span(name) as span:
                _set_attributes(span, span_attributes)
                if attribute_hook is not None:
                    _set_attributes(span, attribute_hook(args))
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper  # type: ignore
    return decorator


def _repository_table(args: tuple[Any, ...]) -> dict[str, Any]:
    model = getattr(args[0], "model", None) if args else None
    return {"db.sql.table": getattr(model, "__tablename__", None)}


def trace_database(operation: Optional[str] = None) -> Callable[[F], F]:
    """Span for a repository method, tagged with the operation and table.

    Example:
        @trace_database()
        async def find_one(self, filters, *, include_deleted): ...
    """
    db_system = "sqlite" if settings.is_sqlite else "postgresql"

    def decorator(func: F) -> F:
        op_name = operation or func.__name__
        return trace_async(
            span_name=f"db.{op_name}",
            attribute_hook=_repository_table,
            **{"db.operation": op_name, "db.system": db_system, "component": "database"},
        )(func)
    return decorator


def trace_storage(operation: Optional[str] = None) -> Callable[[F], F]:
    """Span for an S3 call, tagged with the bucket."""

    def decorator(func: F) -> F:
        op_name = operation or func.__name__
        return trace_async(
            span_name=f"s3.{op_name}",
            attribute_hook=lambda args: {"storage.bucket": getattr(args[0], "bucket", None)},
            **{"storage.operation": op_name, "storage.system": "s3", "component": "storage"},
        )(func)
    return decorator


class _NoOpSpan:
    """Stand-in span while tracing is disabled."""

    def __enter__(self) -> "_NoOpSpan":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None

    def set_attribute(self, key: str, value: Any) -> None:
        return None

    def set_status(self, status: Any) -> None:
        return None

    def record_exception(self, exception: Exception) -> None:
        return None
