"""OpenTelemetry tracing setup."""

import logging
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from clinic_inbox.config import settings

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


def setup_telemetry(app: "FastAPI") -> None:
    """Configure tracing for the FastAPI application.

    Registers a TracerProvider for the service, an OTLP exporter pointed at
    the configured collector, and the FastAPI request instrumentation. The
    webhook route stays traced; health and docs routes are excluded.
    """
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.info("Telemetry disabled: OTEL_EXPORTER_OTLP_ENDPOINT not configured")
        return

    try:
        resource = Resource.create(
            {
                "service.name": settings.OTEL_SERVICE_NAME,
                "deployment.environment": "development" if settings.DEBUG else "production",
            }
        )

        tracer_provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(tracer_provider)

        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True,
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

        FastAPIInstrumentor.instrument_app(
            app,
            tracer_provider=tracer_provider,
            excluded_urls="health,api/docs,api/redoc,api/openapi.json",
        )

        logger.info(f"Telemetry enabled: exporting to {settings.OTEL_EXPORTER_OTLP_ENDPOINT}")

    except Exception as e:
        logger.warning(f"Failed to setup telemetry: {e}")


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer for manual spans around ingestion and send steps."""
    return trace.get_tracer(name)


def instrument_httpx() -> None:
    """Instrument httpx so Green API calls show up as client spans."""
    try:
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

        HTTPXClientInstrumentor().instrument()
        logger.info("httpx instrumentation enabled")
    except ImportError:
        logger.debug("httpx instrumentation not available")


def instrument_sqlalchemy() -> None:
    """Instrument SQLAlchemy for database tracing."""
    try:
        from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

        SQLAlchemyInstrumentor().instrument(enable_commenter=True)
        logger.info("SQLAlchemy instrumentation enabled")
    except ImportError:
        logger.debug("SQLAlchemy instrumentation not available")


def instrument_redis() -> None:
    """Instrument Redis for realtime publish and debug store tracing."""
    try:
        from opentelemetry.instrumentation.redis import RedisInstrumentor

        RedisInstrumentor().instrument()
        logger.info("Redis instrumentation enabled")
    except ImportError:
        logger.debug("Redis instrumentation not available")


def setup_all_instrumentation(app: "FastAPI") -> None:
    """Set up tracing and every available client instrumentation."""
    setup_telemetry(app)

    if settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        instrument_httpx()
        instrument_sqlalchemy()
        instrument_redis()
