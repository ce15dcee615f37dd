"""OpenTelemetry utilities for outbound request tracing."""

from .otel import SERVICE_ATTRIBUTE, get_tracer, instrument_client, uninstrument_client

__all__ = [
    "instrument_client",
    "uninstrument_client",
    "get_tracer",
    "SERVICE_ATTRIBUTE",
]
