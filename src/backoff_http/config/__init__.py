"""Configuration management utilities."""

from .settings import (
    DEFAULT_INITIAL_INTERVAL,
    DEFAULT_JITTER,
    DEFAULT_MAX_ELAPSED_TIME,
    DEFAULT_MAX_INTERVAL,
    DEFAULT_MAX_RETRY,
    DEFAULT_MULTIPLIER,
    BackoffSettings,
    get_settings,
)

__all__ = [
    "BackoffSettings",
    "get_settings",
    "DEFAULT_MAX_RETRY",
    "DEFAULT_INITIAL_INTERVAL",
    "DEFAULT_MULTIPLIER",
    "DEFAULT_MAX_INTERVAL",
    "DEFAULT_MAX_ELAPSED_TIME",
    "DEFAULT_JITTER",
]
