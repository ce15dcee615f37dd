# Assumptions:
# - OAuth2 client-credentials grant (RFC 6749 section 4.4)
# - Tokens are cached until shortly before they expire
# - Token failures surface as TokenRetrieveError, which the retry policy treats as transient

import asyncio
import threading
import time
import weakref
from collections.abc import AsyncGenerator, Generator
from dataclasses import dataclass, field

import httpx
import structlog

from ..http.errors import TokenRetrieveError

logger = structlog.get_logger(__name__)

# Refresh this many seconds before the token actually expires
EXPIRY_BUFFER_SECONDS = 60


@dataclass(frozen=True)
class ClientCredentials:
    token_url: str
    client_id: str
    client_secret: str
    scopes: tuple[str, ...] = ()
    extra_params: dict[str, str] = field(default_factory=dict)


@dataclass
class TokenResponse:
    access_token: str
    token_type: str
    expires_in: int | None


class TokenSource:
    """Obtains and caches client-credentials access tokens"""

    def __init__(
        self,
        credentials: ClientCredentials,
        client: httpx.Client | None = None,
        async_client: httpx.AsyncClient | None = None,
        timeout: float = 5.0,
    ):
        self.credentials = credentials
        self.timeout = timeout
        self._client = client
        self._async_client = async_client
        self._lock = threading.Lock()
        # asyncio locks bind to the loop they first wait on
        self._async_locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock] = (
            weakref.WeakKeyDictionary()
        )
        self._token: str | None = None
        self._token_type = "Bearer"
        self._expires_at: float | None = None

    def token(self) -> str:
        """Get an access token, using the cache when possible"""
        with self._lock:
            if not self._valid():
                self._store(self._parse(self._post_sync()))
            return self._token

    async def atoken(self) -> str:
        """Async variant of token()"""
        async with self._loop_lock():
            if not self._valid():
                self._store(self._parse(await self._post_async()))
            return self._token

    def _loop_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        lock = self._async_locks.get(loop)
        if lock is None:
            lock = self._async_locks[loop] = asyncio.Lock()
        return lock

    @property
    def token_type(self) -> str:
        return self._token_type

    def clear_cache(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = None

    def _valid(self) -> bool:
        if self._token is None:
            return False
        if self._expires_at is None:
            return True
        return time.time() < self._expires_at - EXPIRY_BUFFER_SECONDS

    def _payload(self) -> dict[str, str]:
        payload = {
            "grant_type": "client_credentials",
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
        }
        if self.credentials.scopes:
            payload["scope"] = " ".join(self.credentials.scopes)
        payload.update(self.credentials.extra_params)
        return payload

    def _post_sync(self) -> httpx.Response:
        try:
            if self._client is not None:
                return self._client.post(self.credentials.token_url, data=self._payload(), timeout=self.timeout)
            return httpx.post(self.credentials.token_url, data=self._payload(), timeout=self.timeout)
        except httpx.RequestError as e:
            raise TokenRetrieveError(f"Failed to fetch access token: {e}") from e

    async def _post_async(self) -> httpx.Response:
        try:
            if self._async_client is not None:
                return await self._async_client.post(
                    self.credentials.token_url, data=self._payload(), timeout=self.timeout
                )
            async with httpx.AsyncClient() as client:
                return await client.post(self.credentials.token_url, data=self._payload(), timeout=self.timeout)
        except httpx.RequestError as e:
            raise TokenRetrieveError(f"Failed to fetch access token: {e}") from e

    def _parse(self, response: httpx.Response) -> TokenResponse:
        if response.is_error:
            logger.warning(
                "Access token request rejected",
                token_url=self.credentials.token_url,
                status_code=response.status_code,
            )
            raise TokenRetrieveError(
                f"Access token request failed: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            return TokenResponse(
                access_token=data["access_token"],
                token_type=data.get("token_type", "Bearer"),
                expires_in=data.get("expires_in"),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise TokenRetrieveError(f"Malformed access token response: {e}") from e

    def _store(self, token_response: TokenResponse) -> None:
        self._token = token_response.access_token
        token_type = token_response.token_type or "Bearer"
        self._token_type = "Bearer" if token_type.lower() == "bearer" else token_type
        if token_response.expires_in:
            self._expires_at = time.time() + int(token_response.expires_in)
        else:
            self._expires_at = None
        logger.debug("Access token refreshed", token_url=self.credentials.token_url)


class ClientCredentialsAuth(httpx.Auth):
    """httpx auth that attaches a cached client-credentials bearer token"""

    def __init__(self, token_source: TokenSource):
        self.token_source = token_source

    def sync_auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self.token_source.token()
        request.headers["Authorization"] = f"{self.token_source.token_type} {token}"
        yield request

    async def async_auth_flow(self, request: httpx.Request) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self.token_source.atoken()
        request.headers["Authorization"] = f"{self.token_source.token_type} {token}"
        yield request
