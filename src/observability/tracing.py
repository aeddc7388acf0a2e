from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from config.settings import AppSettings

_SERVICE_NAME = "toolgate"
_LOGGER = logging.getLogger("toolgate")


def _resolve_otlp_http_endpoint() -> str:
    """
    Resolve OTLP HTTP traces endpoint.

    Priority:
    - OTEL_EXPORTER_OTLP_TRACES_ENDPOINT
    - OTEL_EXPORTER_OTLP_ENDPOINT (append '/v1/traces' if not provided)
    - default 'http://localhost:4318/v1/traces'
    """
    traces_ep = os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")
    if traces_ep:
        return traces_ep.strip()
    base = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if base:
        base = base.strip().rstrip("/")
        return base if base.endswith("/v1/traces") else f"{base}/v1/traces"
    return "http://localhost:4318/v1/traces"


def init_tracing(settings: AppSettings) -> None:
    """
    Initialize OpenTelemetry tracing if enabled via settings.

    - Configures TracerProvider with Resource(service.name, service.instance.id).
    - Adds BatchSpanProcessor with OTLP HTTP exporter.

    No-op when settings.enable_tracing is False.
    """
    if not settings.enable_tracing:
        return

    resource = Resource.create(
        attributes={
            "service.name": _SERVICE_NAME,
            "service.instance.id": settings.service_id,
            "deployment.environment": settings.environment,
        }
    )
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)

    endpoint = _resolve_otlp_http_endpoint()
    try:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, timeout=5)))
    except Exception as e:
        _LOGGER.warning("Failed to initialize OTLP exporter; tracing will be local-only: %s", e)


def instrument_fastapi_app(app: FastAPI) -> None:
    """Instrument a FastAPI app with OpenTelemetry, excluding /metrics."""
    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=trace.get_tracer_provider(),
        excluded_urls="/metrics",
    )


def tracer() -> trace.Tracer:
    """Tracer for manual spans (a no-op tracer until a provider is installed)."""
    return trace.get_tracer(_SERVICE_NAME)


def shutdown_tracing() -> None:
    """Flush and shutdown the tracer provider when it supports it."""
    provider = trace.get_tracer_provider()
    if hasattr(provider, "shutdown"):
        try:
            provider.shutdown()
        except Exception as e:
            _LOGGER.debug("Tracer provider shutdown error: %s", e)
