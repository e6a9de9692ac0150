"""OpenTelemetry tracing configuration (opt-in via OTLP_ENDPOINT)."""

import logging
from typing import Optional

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from compose_stack.lib.config_manager import config

logger = logging.getLogger(__name__)


def setup_tracing(
    service_name: str,
    otlp_endpoint: Optional[str] = None,
    app: Optional[FastAPI] = None,
) -> Optional[trace.Tracer]:
    """Configure OpenTelemetry tracing over OTLP/HTTP.

    Args:
        service_name: Name of the service (e.g., "web", "worker")
        otlp_endpoint: OTLP HTTP endpoint (default: OTLP_ENDPOINT config)
        app: FastAPI app to instrument, if any

    Returns:
        Tracer instance, or None when no endpoint is configured
    """
    if otlp_endpoint is None:
        otlp_endpoint = config.get("OTLP_ENDPOINT")

    if not otlp_endpoint:
        logger.debug("OTLP_ENDPOINT not set, tracing disabled")
        return None

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "compose-stack",
            "deployment.environment": config.get("ENVIRONMENT"),
        }
    )

    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{otlp_endpoint}/v1/traces"))
    )
    trace.set_tracer_provider(provider)

    if app is not None:
        FastAPIInstrumentor.instrument_app(app)

    logger.info(f"Tracing enabled, exporting to {otlp_endpoint}")
    return trace.get_tracer(service_name)
