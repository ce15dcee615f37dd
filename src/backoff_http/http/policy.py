"""Retry classification of transport errors and HTTP responses.

Only the status code and the error identity are inspected, so the body of a
streamed response is never read before its retry eligibility is known.
"""

from enum import Enum

import httpx

from .errors import is_retryable

# 4xx status codes that are worth another attempt.
RETRYABLE_STATUS_CODES = frozenset(
    {
        httpx.codes.REQUEST_TIMEOUT,
        httpx.codes.TOO_EARLY,
        httpx.codes.TOO_MANY_REQUESTS,
    }
)

TIMEOUT_ERRORS = (TimeoutError, httpx.TimeoutException)


class Retryability(str, Enum):
    RETRYABLE = "retryable"
    PERMANENT = "permanent"


def classify_error(error: BaseException) -> Retryability:
    """Deadline expiry and token retrieval failures are retryable; all else is permanent"""
    if isinstance(error, TIMEOUT_ERRORS) or is_retryable(error):
        return Retryability.RETRYABLE
    return Retryability.PERMANENT


def classify_status(status_code: int) -> Retryability:
    if status_code in RETRYABLE_STATUS_CODES:
        return Retryability.RETRYABLE

    # 5xx are usually outages the server recovers from; 501 is a capability
    # gap and will not change on retry.
    if 500 <= status_code < 600 and status_code != httpx.codes.NOT_IMPLEMENTED:
        return Retryability.RETRYABLE

    return Retryability.PERMANENT


def classify_response(response: httpx.Response) -> Retryability:
    if response.status_code < 400:
        return Retryability.PERMANENT
    return classify_status(response.status_code)


def classify(outcome: BaseException | httpx.Response) -> Retryability:
    if isinstance(outcome, httpx.Response):
        return classify_response(outcome)
    return classify_error(outcome)
