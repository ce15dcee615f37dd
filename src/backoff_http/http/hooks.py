import httpx
import structlog

from .request import Request

logger = structlog.get_logger(__name__)


class Hooks:
    """Observability callbacks invoked by the execution loop.

    Every method is a no-op; subclasses override the ones they need. Hooks
    only observe: exceptions they raise are logged and ignored, and nothing
    they return is used.
    """

    def before_retry(self, request: Request, error: Exception, attempt: int, wait: float) -> None:
        """Called once per retry decision, before sleeping `wait` seconds"""

    def after_response(
        self, request: Request, response: httpx.Response, attempt: int, duration: float
    ) -> None:
        """Called once per attempt that produced an HTTP response, retryable or not"""

    def on_error(self, request: Request, error: BaseException, attempt: int, duration: float) -> None:
        """Called once per attempt that failed at the transport level"""


class LoggingHooks(Hooks):
    """Hooks that write each transition to a structured logger"""

    def __init__(self, log: structlog.BoundLogger | None = None):
        self.log = log or logger

    def before_retry(self, request: Request, error: Exception, attempt: int, wait: float) -> None:
        self.log.warning(
            "Retry scheduled",
            method=request.method,
            url=request.url,
            attempt=attempt,
            error=str(error),
            backoff_seconds=round(wait, 3),
        )

    def after_response(
        self, request: Request, response: httpx.Response, attempt: int, duration: float
    ) -> None:
        self.log.info(
            "HTTP response received",
            method=request.method,
            url=request.url,
            attempt=attempt,
            status_code=response.status_code,
            response_time_ms=round(duration * 1000, 3),
        )

    def on_error(self, request: Request, error: BaseException, attempt: int, duration: float) -> None:
        self.log.error(
            "HTTP request error",
            method=request.method,
            url=request.url,
            attempt=attempt,
            error=str(error),
            error_type=type(error).__name__,
            response_time_ms=round(duration * 1000, 3),
        )
