from __future__ import annotations

from app.core.config import settings
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor


def _install_provider(service_name: str) -> None:
    resource = Resource.create(
        {"service.name": service_name, "deployment.environment": settings.env}
    )
    provider = TracerProvider(resource=resource)
    exporter = (
        OTLPSpanExporter(endpoint=settings.otel_otlp_endpoint)
        if settings.otel_otlp_endpoint
        else OTLPSpanExporter()
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)


def init_otel(app) -> None:
    """Export request spans when OTEL_ENABLED is set. Health probes are not traced."""
    if not settings.otel_enabled:
        return
    _install_provider(settings.api_name)
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health")


def init_cli_tracing(command: str) -> None:
    if settings.otel_enabled:
        _install_provider(f"{settings.api_name}-{command}")


def get_tracer(name: str) -> trace.Tracer:
    # A no-op tracer until a provider is installed.
    return trace.get_tracer(name)
