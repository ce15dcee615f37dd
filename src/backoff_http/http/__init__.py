"""HTTP client with exponential backoff retries and observability hooks."""

from .client import BackoffClient
from .errors import (
    HttpClientError,
    PermanentError,
    RequestBuildError,
    RetryableError,
    RetryExhaustedError,
    TokenRetrieveError,
    is_retryable,
)
from .hooks import Hooks, LoggingHooks
from .policy import RETRYABLE_STATUS_CODES, Retryability, classify, classify_error, classify_response
from .request import Request, RequestBuilder
from .response import Response, unmarshal
from .schedule import BackoffState, ExponentialBackoff
from .transport import new_default_client, new_oauth2_client, new_pooled_client

__all__ = [
    "BackoffClient",
    "BackoffState",
    "ExponentialBackoff",
    "Hooks",
    "LoggingHooks",
    "HttpClientError",
    "PermanentError",
    "RequestBuildError",
    "RetryableError",
    "RetryExhaustedError",
    "TokenRetrieveError",
    "is_retryable",
    "RETRYABLE_STATUS_CODES",
    "Retryability",
    "classify",
    "classify_error",
    "classify_response",
    "Request",
    "RequestBuilder",
    "Response",
    "unmarshal",
    "new_default_client",
    "new_oauth2_client",
    "new_pooled_client",
]
