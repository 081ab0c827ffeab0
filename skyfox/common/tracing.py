"""OpenTelemetry wiring: process-wide provider, FastAPI spans, payment tracer."""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from skyfox.common.config import settings


def setup_tracing(service_name: str) -> None:
    """Register an OTLP-exporting provider unless `OTEL_ENABLED` is off.

    With tracing off the global provider stays the no-op default, so spans
    opened through `get_tracer` cost nothing.
    """

    if not settings.otel_enabled:
        return
    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name, "service.version": settings.app_version})
    )
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)))
    trace.set_tracer_provider(provider)


def instrument_app(app: FastAPI) -> None:
    if not settings.otel_enabled:
        return
    # /metrics and health probes would otherwise dominate the trace volume.
    FastAPIInstrumentor.instrument_app(app, excluded_urls="metrics,health,mshealth")


def get_tracer() -> trace.Tracer:
    """Tracer for payment-domain spans (lock acquire, release, outcome)."""

    return trace.get_tracer("skyfox.payment_gateway")
