import httpx
from opentelemetry import trace
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

SERVICE_ATTRIBUTE = "service"


def instrument_client(
    client: httpx.Client | httpx.AsyncClient,
    tracer_provider: trace.TracerProvider | None = None,
) -> httpx.Client | httpx.AsyncClient:
    """
    Attach OpenTelemetry instrumentation to a single httpx client

    Every transport round trip of the client gets a client span. Exporter and
    SDK setup are left to the application.

    Args:
        client: Client to instrument
        tracer_provider: Provider to use instead of the global one
    """
    HTTPXClientInstrumentor.instrument_client(client, tracer_provider=tracer_provider)
    return client


def uninstrument_client(client: httpx.Client | httpx.AsyncClient) -> None:
    """Remove instrumentation added by instrument_client"""
    HTTPXClientInstrumentor.uninstrument_client(client)


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Get a tracer instance"""
    return trace.get_tracer(name or __name__)
