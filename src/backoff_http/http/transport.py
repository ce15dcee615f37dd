"""Factories for the httpx clients a BackoffClient sends through.

Each call returns a new client; nothing is shared across factory calls. A
pooled client keeps connections alive for reuse and is meant to be long-lived
and reused against the same hosts. Creating many transient pooled clients
leaks sockets until they are closed.
"""

import os

import httpx

from ..auth.oauth2 import ClientCredentials, ClientCredentialsAuth, TokenSource
from ..telemetry.otel import instrument_client

DEFAULT_MAX_CONNECTIONS = 100
DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_KEEPALIVE_EXPIRY = 90.0


def new_default_client(instrument: bool = False) -> httpx.AsyncClient:
    """Plain client without a client-level timeout; per-attempt timeouts come from the BackoffClient"""
    client = httpx.AsyncClient(timeout=None)
    return instrument_client(client) if instrument else client


def new_pooled_transport(
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
    max_keepalive_connections: int | None = None,
    keepalive_expiry: float = DEFAULT_KEEPALIVE_EXPIRY,
    http2: bool = False,
) -> httpx.AsyncHTTPTransport:
    if max_keepalive_connections is None:
        max_keepalive_connections = (os.cpu_count() or 1) + 1

    limits = httpx.Limits(
        max_connections=max_connections,
        max_keepalive_connections=max_keepalive_connections,
        keepalive_expiry=keepalive_expiry,
    )
    # Retries belong to the BackoffClient, not to the connection layer
    return httpx.AsyncHTTPTransport(limits=limits, http2=http2, retries=0)


def new_pooled_client(
    instrument: bool = False,
    http2: bool = False,
    auth: httpx.Auth | None = None,
    **transport_options,
) -> httpx.AsyncClient:
    """Long-lived client over a keep-alive connection pool"""
    client = httpx.AsyncClient(
        transport=new_pooled_transport(http2=http2, **transport_options),
        timeout=httpx.Timeout(None, connect=DEFAULT_CONNECT_TIMEOUT),
        auth=auth,
    )
    return instrument_client(client) if instrument else client


def new_oauth2_client(
    credentials: ClientCredentials,
    pooled: bool = False,
    instrument: bool = False,
    token_client: httpx.AsyncClient | None = None,
) -> httpx.AsyncClient:
    """Client that authenticates every request with a client-credentials token"""
    auth = ClientCredentialsAuth(TokenSource(credentials, async_client=token_client))
    if pooled:
        return new_pooled_client(instrument=instrument, auth=auth)

    client = httpx.AsyncClient(timeout=None, auth=auth)
    return instrument_client(client) if instrument else client
