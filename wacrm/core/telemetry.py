"""OpenTelemetry tracing setup."""

import logging
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.aio_pika import AioPikaInstrumentor
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from wacrm.config import settings

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


def setup_tracer_provider() -> TracerProvider | None:
    """Install a global tracer provider exporting over OTLP.

    Returns None when no collector endpoint is configured; spans are then
    created against the no-op provider.
    """
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.info("Telemetry disabled: OTEL_EXPORTER_OTLP_ENDPOINT not configured")
        return None

    resource = Resource.create(
        {
            "service.name": settings.OTEL_SERVICE_NAME,
            "service.version": "1.0.0",
            "deployment.environment": "development" if settings.DEBUG else "production",
        }
    )
    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True)
        )
    )
    trace.set_tracer_provider(tracer_provider)
    logger.info(f"Telemetry enabled: exporting to {settings.OTEL_EXPORTER_OTLP_ENDPOINT}")
    return tracer_provider


def instrument_clients() -> None:
    """Trace outbound HTTP, database, RabbitMQ and Redis calls."""
    HTTPXClientInstrumentor().instrument()
    SQLAlchemyInstrumentor().instrument(enable_commenter=True)
    AioPikaInstrumentor().instrument()
    RedisInstrumentor().instrument()


def setup_telemetry(app: "FastAPI") -> None:
    """Configure tracing for the API process."""
    try:
        tracer_provider = setup_tracer_provider()
        if tracer_provider is None:
            return
        FastAPIInstrumentor.instrument_app(
            app,
            tracer_provider=tracer_provider,
            excluded_urls="health,api/docs,api/redoc,api/openapi.json",
        )
        instrument_clients()
    except Exception as e:
        # Tracing must never keep the API from starting
        logger.warning(f"Failed to setup telemetry: {e}")


def setup_worker_telemetry() -> None:
    """Configure tracing for a queue or scheduler worker process."""
    try:
        if setup_tracer_provider() is not None:
            instrument_clients()
    except Exception as e:
        logger.warning(f"Failed to setup telemetry: {e}")


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer for manual spans, e.g. around webhook ingestion."""
    return trace.get_tracer(name)
