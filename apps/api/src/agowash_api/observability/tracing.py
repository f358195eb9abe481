"""OpenTelemetry setup for the API process and ledger spans."""

from __future__ import annotations

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.semconv.resource import ResourceAttributes

from agowash_api.core.settings import Settings

TRACER_NAME = "agowash_api.ledger"

_provider: TracerProvider | None = None


def build_tracer_provider(settings: Settings, *, service_name: str, service_version: str) -> TracerProvider:
    provider = TracerProvider(
        resource=Resource.create(
            {
                ResourceAttributes.SERVICE_NAME: service_name,
                ResourceAttributes.SERVICE_VERSION: service_version,
                ResourceAttributes.DEPLOYMENT_ENVIRONMENT: settings.environment,
            }
        )
    )
    if settings.otel_exporter_otlp_endpoint:
        exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            headers=settings.otel_exporter_otlp_headers or None,
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def configure_tracing(app: FastAPI, settings: Settings, *, service_name: str, service_version: str) -> None:
    """Install the process-wide provider once, then instrument ``app``.

    A provider is installed even without an exporter so log lines still
    carry trace and span ids.
    """

    global _provider

    if _provider is None:
        _provider = build_tracer_provider(settings, service_name=service_name, service_version=service_version)
        trace.set_tracer_provider(_provider)

    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=_provider,
        excluded_urls=settings.otel_excluded_urls,
    )


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)


__all__ = ["TRACER_NAME", "build_tracer_provider", "configure_tracing", "get_tracer"]
