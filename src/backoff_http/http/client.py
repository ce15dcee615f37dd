# Assumptions:
# - One attempt is in flight at a time for a given request
# - Attempt counter and backoff state live only inside execute()
# - The httpx client (connection pool) is the only state shared between concurrent calls
# - Retries re-send the same request, so non-idempotent calls get at-least-once delivery

import asyncio
import random
import time
from collections.abc import Mapping
from typing import Any

import httpx
import structlog
from opentelemetry import trace

from ..config.settings import BackoffSettings
from ..logging.setup import correlation_headers
from ..telemetry.otel import SERVICE_ATTRIBUTE, get_tracer
from .errors import RetryableError, RetryExhaustedError
from .hooks import Hooks
from .policy import Retryability, classify_error, classify_response
from .request import CONTENT_TYPE_JSON, BodyInput, Request, RequestBuilder
from .response import Response
from .schedule import ExponentialBackoff
from .transport import new_default_client

logger = structlog.get_logger(__name__)


class BackoffClient:
    """HTTP client that retries transient failures with exponential backoff"""

    def __init__(
        self,
        settings: BackoffSettings | None = None,
        client: httpx.AsyncClient | None = None,
        hooks: Hooks | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings or BackoffSettings()
        self.hooks = hooks or Hooks()
        self.backoff = ExponentialBackoff.from_settings(self.settings)
        self.rng = rng
        self._owns_client = client is None
        self.client = client if client is not None else new_default_client()
        self.tracer = get_tracer(__name__)

    async def __aenter__(self) -> "BackoffClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this BackoffClient created it"""
        if self._owns_client:
            await self.client.aclose()

    async def execute(self, request: Request) -> Response:
        """
        Send a request, retrying transient failures

        Args:
            request: Request to send; it is re-sent unchanged on every attempt

        Returns:
            The materialized response of the first non-retryable outcome

        Raises:
            RetryExhaustedError: the retry budget ran out on a retryable outcome
            asyncio.CancelledError: the calling task was cancelled
            Exception: the underlying error of a permanent transport failure
        """
        log = logger.bind(method=request.method, url=request.url)
        state = self.backoff.start(rng=self.rng)

        with self.tracer.start_as_current_span(
            f"{request.method} retry",
            kind=trace.SpanKind.INTERNAL,
            attributes={
                SERVICE_ATTRIBUTE: self.settings.service,
                "http.request.method": request.method,
                "url.full": request.url,
            },
        ) as span:
            while True:
                attempt = state.begin_attempt()
                span.set_attribute("http.request.attempts", attempt)
                log.debug("Making HTTP request", attempt=attempt, max_retry=self.settings.max_retry)

                started = time.monotonic()
                try:
                    response, deadline = await self._send(request)
                except asyncio.CancelledError:
                    log.info("HTTP request cancelled", attempt=attempt)
                    raise
                except Exception as e:
                    self._notify("on_error", request, e, attempt, time.monotonic() - started)
                    if classify_error(e) is Retryability.PERMANENT:
                        log.error("HTTP request failed permanently", attempt=attempt, error=str(e))
                        raise
                    error = RetryableError.from_error(e)
                    wait = state.next_wait()
                else:
                    duration = time.monotonic() - started
                    log.debug(
                        "HTTP response received",
                        attempt=attempt,
                        status_code=response.status_code,
                        response_time_ms=round(duration * 1000, 3),
                    )
                    self._notify("after_response", request, response, attempt, duration)

                    if classify_response(response) is Retryability.PERMANENT:
                        try:
                            result = await self._materialize(response, deadline)
                        except Exception as e:
                            self._notify("on_error", request, e, attempt, time.monotonic() - started)
                            if classify_error(e) is Retryability.PERMANENT:
                                log.error("HTTP response body read failed", attempt=attempt, error=str(e))
                                raise
                            # The body stalled past the attempt deadline
                            error = RetryableError.from_error(e)
                            wait = state.next_wait()
                        else:
                            span.set_attribute("http.response.status_code", result.status_code)
                            return result
                    else:
                        wait = state.next_wait()
                        if wait is None:
                            snapshot = await self._snapshot(response, deadline, log)
                        else:
                            # Discard the body unread so the connection returns to the pool
                            await response.aclose()
                            snapshot = Response.from_httpx(response, body=b"")
                        error = RetryableError.from_response(request.method, request.url, snapshot)

                if wait is None:
                    log.error(
                        "HTTP request failed after all retries",
                        attempts=attempt,
                        elapsed_seconds=round(state.elapsed, 3),
                        error=str(error),
                    )
                    raise RetryExhaustedError(error, attempts=attempt) from (error.cause or error)

                self._notify("before_retry", request, error, attempt, wait)
                log.warning(
                    "HTTP request failed, retrying",
                    attempt=attempt,
                    error=str(error),
                    backoff_seconds=round(wait, 3),
                )
                await asyncio.sleep(wait)

    async def _send(self, request: Request) -> tuple[httpx.Response, float | None]:
        """
        Start one attempt under the per-attempt timeout

        Returns the streamed response and the attempt deadline (loop time, or
        None when unbounded); the body must be read before that deadline.
        """
        async with asyncio.timeout(self.settings.timeout) as timeout:
            response = await self.client.send(request.to_httpx(), stream=True)
        return response, timeout.when()

    async def _materialize(self, response: httpx.Response, deadline: float | None) -> Response:
        try:
            async with asyncio.timeout_at(deadline):
                body = await response.aread()
        finally:
            await response.aclose()
        return Response.from_httpx(response, body=body)

    async def _snapshot(
        self, response: httpx.Response, deadline: float | None, log: structlog.BoundLogger
    ) -> Response:
        """Last retryable response, with its body if it arrives before the attempt deadline"""
        try:
            return await self._materialize(response, deadline)
        except (TimeoutError, httpx.TimeoutException) as e:
            log.warning("HTTP response body not read", status_code=response.status_code, error=str(e))
            return Response.from_httpx(response, body=b"")

    def _notify(self, name: str, *args) -> None:
        try:
            getattr(self.hooks, name)(*args)
        except Exception:
            logger.warning("Observability hook failed", hook=name, exc_info=True)

    def _builder(self, method: str, url: str, headers: Mapping[str, str] | None) -> RequestBuilder:
        return RequestBuilder().method(method).url(url).headers(correlation_headers()).headers(headers)

    async def get(self, url: str, headers: Mapping[str, str] | None = None) -> Response:
        """Make GET request"""
        return await self.execute(self._builder("GET", url, headers).build())

    async def post(self, url: str, body: BodyInput | None = None, headers: Mapping[str, str] | None = None) -> Response:
        """Make POST request"""
        return await self.execute(self._builder("POST", url, headers).body(body).build())

    async def post_json(self, url: str, body: Any, headers: Mapping[str, str] | None = None) -> Response:
        """Make POST request with a JSON body"""
        return await self.execute(self._json_builder("POST", url, body, headers).build())

    async def post_form(
        self, url: str, form: Mapping[str, str], headers: Mapping[str, str] | None = None
    ) -> Response:
        """Make POST request with form data"""
        return await self.execute(self._builder("POST", url, headers).post_form(form).build())

    async def put(self, url: str, body: BodyInput | None = None, headers: Mapping[str, str] | None = None) -> Response:
        """Make PUT request"""
        return await self.execute(self._builder("PUT", url, headers).body(body).build())

    async def put_json(self, url: str, body: Any, headers: Mapping[str, str] | None = None) -> Response:
        """Make PUT request with a JSON body"""
        return await self.execute(self._json_builder("PUT", url, body, headers).build())

    async def patch(
        self, url: str, body: BodyInput | None = None, headers: Mapping[str, str] | None = None
    ) -> Response:
        """Make PATCH request"""
        return await self.execute(self._builder("PATCH", url, headers).body(body).build())

    async def patch_json(self, url: str, body: Any, headers: Mapping[str, str] | None = None) -> Response:
        """Make PATCH request with a JSON body"""
        return await self.execute(self._json_builder("PATCH", url, body, headers).build())

    async def delete(self, url: str, headers: Mapping[str, str] | None = None) -> Response:
        """Make DELETE request"""
        return await self.execute(self._builder("DELETE", url, headers).build())

    def _json_builder(
        self, method: str, url: str, body: Any, headers: Mapping[str, str] | None
    ) -> RequestBuilder:
        builder = RequestBuilder().method(method).url(url).headers(correlation_headers())
        builder.content_type(CONTENT_TYPE_JSON).body_json(body)
        return builder.headers(headers)
