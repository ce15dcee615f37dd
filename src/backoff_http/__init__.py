"""
Resilient HTTP client for BPT python services.

This library provides:
- Exponential backoff retries for transient HTTP failures
- A fluent request builder
- Pluggable observability hooks
- Logging, telemetry and configuration helpers
"""

from .config import BackoffSettings, get_settings
from .http import (
    BackoffClient,
    Hooks,
    LoggingHooks,
    PermanentError,
    RequestBuilder,
    Response,
    RetryableError,
    RetryExhaustedError,
)

__version__ = "1.0.0"
__author__ = "BPT Team"

__all__ = [
    "BackoffClient",
    "BackoffSettings",
    "Hooks",
    "LoggingHooks",
    "PermanentError",
    "RequestBuilder",
    "Response",
    "RetryableError",
    "RetryExhaustedError",
    "get_settings",
]
