# Assumptions:
# - Configuration management using environment variables
# - Pydantic Settings for validation
# - Durations are expressed in seconds

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAX_RETRY = 0
DEFAULT_INITIAL_INTERVAL = 0.1
DEFAULT_MULTIPLIER = 1.5
DEFAULT_MAX_INTERVAL = 5.0
DEFAULT_MAX_ELAPSED_TIME = 30 * 60.0
DEFAULT_JITTER = 0.2


class BackoffSettings(BaseSettings):
    """Retry and backoff settings for a BackoffClient"""

    # Service name, used to label logs and spans
    service: str = "http-client"

    # Retries allowed after the first attempt; 0 means bounded only by max_elapsed_time
    max_retry: int = DEFAULT_MAX_RETRY

    # Minimum time to wait before retrying a request
    initial_interval: float = DEFAULT_INITIAL_INTERVAL

    # Maximum time to wait before retrying a request
    max_interval: float = DEFAULT_MAX_INTERVAL

    # Exponential backoff multiplier
    multiplier: float = DEFAULT_MULTIPLIER

    # Bound on the whole retry sequence, measured from the first attempt; 0 or None disables it
    max_elapsed_time: float | None = DEFAULT_MAX_ELAPSED_TIME

    # Timeout of a single attempt; None leaves the attempt unbounded
    timeout: float | None = None

    # Randomization factor applied to each wait (0.2 means +/-20%)
    jitter: float = DEFAULT_JITTER

    model_config = SettingsConfigDict(
        env_prefix="HTTP_BACKOFF_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("max_retry")
    @classmethod
    def _check_max_retry(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_retry must be >= 0")
        return value

    @field_validator("initial_interval", "max_interval")
    @classmethod
    def _check_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("intervals must be positive")
        return value

    @field_validator("multiplier")
    @classmethod
    def _check_multiplier(cls, value: float) -> float:
        if value < 1:
            raise ValueError("multiplier must be >= 1")
        return value

    @field_validator("timeout")
    @classmethod
    def _check_timeout(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @field_validator("max_elapsed_time")
    @classmethod
    def _check_max_elapsed_time(cls, value: float | None) -> float | None:
        if value is not None and value < 0:
            raise ValueError("max_elapsed_time must be >= 0")
        return value or None

    @field_validator("jitter")
    @classmethod
    def _check_jitter(cls, value: float) -> float:
        if not 0 <= value < 1:
            raise ValueError("jitter must be in [0, 1)")
        return value

    @model_validator(mode="after")
    def _check_interval_order(self) -> "BackoffSettings":
        if self.max_interval < self.initial_interval:
            raise ValueError("max_interval must be >= initial_interval")
        return self


@lru_cache()
def get_settings() -> BackoffSettings:
    """Get backoff settings singleton loaded from the environment"""
    return BackoffSettings()
