# Assumptions:
# - Retry eligibility is carried by the `retryable` attribute, not by the message
# - Permanent transport errors reach the caller unwrapped; these types cover the rest

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .response import Response


class HttpClientError(Exception):
    """Base exception for the backoff HTTP client"""

    retryable = False


class RequestBuildError(HttpClientError):
    """Raised when a request cannot be assembled from the builder input"""

    pass


class RetryableError(HttpClientError):
    """Outcome of an attempt that is eligible for another try"""

    retryable = True

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        response: "Response | None" = None,
    ):
        self.cause = cause
        self.response = response
        super().__init__(message)

    @classmethod
    def from_error(cls, error: BaseException) -> "RetryableError":
        return cls(str(error) or type(error).__name__, cause=error)

    @classmethod
    def from_response(cls, method: str, url: str, response: "Response") -> "RetryableError":
        return cls(
            f"http-client: failed to {method} {url} response: {response.status}",
            response=response,
        )


class PermanentError(HttpClientError):
    """Terminal failure surfaced to the caller"""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        response: "Response | None" = None,
        attempts: int = 0,
    ):
        self.cause = cause
        self.response = response
        self.attempts = attempts
        super().__init__(message)


class RetryExhaustedError(PermanentError):
    """Raised when the retry budget is spent on a retryable outcome"""

    def __init__(self, last_error: RetryableError, attempts: int):
        super().__init__(
            f"giving up after {attempts} attempt(s): {last_error}",
            cause=last_error.cause,
            response=last_error.response,
            attempts=attempts,
        )
        self.last_error = last_error


def is_retryable(error: BaseException) -> bool:
    """Check the structural retry marker of an error"""
    return bool(getattr(error, "retryable", False))


class TokenRetrieveError(HttpClientError):
    """Raised when the credential subsystem fails to obtain an access token"""

    retryable = True

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
