"""OAuth2 client-credentials support for outbound requests."""

from ..http.errors import TokenRetrieveError
from .oauth2 import ClientCredentials, ClientCredentialsAuth, TokenResponse, TokenSource

__all__ = [
    "ClientCredentials",
    "ClientCredentialsAuth",
    "TokenResponse",
    "TokenSource",
    "TokenRetrieveError",
]
