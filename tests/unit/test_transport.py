# Assumptions:
# - Using pytest for testing framework
# - Testing client factories and OpenTelemetry instrumentation wiring

from unittest.mock import patch

import httpx
import pytest

from backoff_http.auth.oauth2 import ClientCredentials, ClientCredentialsAuth
from backoff_http.http.transport import (
    new_default_client,
    new_oauth2_client,
    new_pooled_client,
    new_pooled_transport,
)
from backoff_http.telemetry.otel import get_tracer, instrument_client


@pytest.fixture
def credentials():
    return ClientCredentials(
        token_url="https://auth.example.com/oauth2/token",
        client_id="svc-client",
        client_secret="s3cret",
    )


class TestTransportFactories:
    """Test cases for client factories"""

    @pytest.mark.asyncio
    async def test_default_client_has_no_timeout(self):
        """Test per-attempt timeouts are left to the BackoffClient"""
        client = new_default_client()

        assert client.timeout == httpx.Timeout(None)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_factories_return_new_clients(self):
        """Test no client is shared between factory calls"""
        first, second = new_default_client(), new_pooled_client()

        assert first is not second
        await first.aclose()
        await second.aclose()

    @pytest.mark.asyncio
    async def test_pooled_client(self):
        """Test the pooled client connect timeout"""
        client = new_pooled_client()

        assert client.timeout.connect == 30.0
        assert client.timeout.read is None
        await client.aclose()

    def test_pooled_transport(self):
        """Test the pooled transport is created"""
        assert isinstance(new_pooled_transport(max_connections=10), httpx.AsyncHTTPTransport)

    @pytest.mark.parametrize("pooled", [False, True])
    @pytest.mark.asyncio
    async def test_oauth2_client(self, credentials, pooled):
        """Test OAuth2 clients carry client-credentials auth"""
        client = new_oauth2_client(credentials, pooled=pooled)

        assert isinstance(client.auth, ClientCredentialsAuth)
        assert client.auth.token_source.credentials == credentials
        await client.aclose()

    @pytest.mark.asyncio
    async def test_instrument_flag(self):
        """Test instrument=True attaches OpenTelemetry instrumentation"""
        with patch("backoff_http.http.transport.instrument_client", side_effect=lambda c: c) as instrument:
            client = new_default_client(instrument=True)

        instrument.assert_called_once_with(client)
        await client.aclose()


class TestTelemetry:
    """Test cases for OpenTelemetry helpers"""

    @pytest.mark.asyncio
    async def test_instrumented_client_still_sends(self):
        """Test instrumentation keeps the client usable"""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(204)))

        assert instrument_client(client) is client
        response = await client.get("https://api.example.com/ping")

        assert response.status_code == 204
        await client.aclose()

    def test_get_tracer(self):
        """Test a tracer is always available"""
        tracer = get_tracer("backoff_http.tests")

        with tracer.start_as_current_span("outer") as span:
            assert span is not None
