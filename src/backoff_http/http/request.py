# Assumptions:
# - Requests are immutable and re-sent as-is on every attempt
# - Bodies are buffered to bytes at build time so retries can replay them
# - Form data wins over any method or content type set before build()

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import IO, Any
from urllib.parse import urlencode

import httpx

from .errors import RequestBuildError

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"
CONTENT_TYPE_TEXT = "text/plain"
CONTENT_TYPE_HTML = "text/html"
CONTENT_TYPE_XML = "application/xml"
CONTENT_TYPE_OCTET_STREAM = "application/octet-stream"

USER_AGENT_HEADER = "User-Agent"
CONTENT_TYPE_HEADER = "Content-Type"

BodyInput = bytes | bytearray | str | IO[bytes] | IO[str] | Iterable[bytes]


@dataclass(frozen=True)
class Request:
    """Immutable outbound request"""

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes | None = None

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    # The generated hash would fail on the headers proxy
    def __hash__(self) -> int:
        return hash((self.method, self.url, frozenset(self.headers.items()), self.content))

    def to_httpx(self) -> httpx.Request:
        """Fresh transport request for one attempt"""
        return httpx.Request(self.method, self.url, headers=dict(self.headers), content=self.content)


def _read_body(body: BodyInput | None) -> bytes | None:
    if body is None:
        return None
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if hasattr(body, "read"):
        data = body.read()
        return data.encode("utf-8") if isinstance(data, str) else bytes(data)
    return b"".join(body)


class RequestBuilder:
    """Fluent builder for Request values"""

    def __init__(self):
        self._method: str | None = None
        self._url: str | None = None
        self._query: dict[str, list[str]] = {}
        self._headers: dict[str, str] = {}
        self._form: dict[str, list[str]] = {}
        self._body: bytes | None = None

    def method(self, method: str) -> "RequestBuilder":
        self._method = method.upper()
        return self

    def url(self, url: str) -> "RequestBuilder":
        self._url = url
        return self

    def query_param(self, key: str, value: str) -> "RequestBuilder":
        """Add a query parameter, keeping earlier values of the same key"""
        self._query.setdefault(key, []).append(str(value))
        return self

    def query(self, query: Mapping[str, str | list[str]]) -> "RequestBuilder":
        """Set query parameters, replacing earlier values of the same keys"""
        for key, value in query.items():
            values = value if isinstance(value, list) else [value]
            self._query[key] = [str(item) for item in values]
        return self

    def header(self, key: str, value: str) -> "RequestBuilder":
        self._set_header(key, value)
        return self

    def headers(self, headers: Mapping[str, str] | None) -> "RequestBuilder":
        for key, value in (headers or {}).items():
            self._set_header(key, value)
        return self

    def content_type(self, content_type: str) -> "RequestBuilder":
        self._set_header(CONTENT_TYPE_HEADER, content_type)
        return self

    def user_agent(self, user_agent: str) -> "RequestBuilder":
        self._set_header(USER_AGENT_HEADER, user_agent)
        return self

    def body(self, body: BodyInput | None) -> "RequestBuilder":
        """Set the body from bytes, text, a readable stream or an iterable of chunks"""
        self._body = _read_body(body)
        return self

    def body_string(self, body: str) -> "RequestBuilder":
        self._body = body.encode("utf-8")
        return self

    def body_bytes(self, body: bytes) -> "RequestBuilder":
        self._body = bytes(body)
        return self

    def body_json(self, data: Any) -> "RequestBuilder":
        """Set a JSON-encoded body; the content type is left to the caller"""
        try:
            self._body = json.dumps(data).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise RequestBuildError(f"Failed to encode JSON body: {e}") from e
        return self

    def post_form(self, form: Mapping[str, str]) -> "RequestBuilder":
        for key, value in form.items():
            self._form.setdefault(key, []).append(str(value))
        return self

    def build(self) -> Request:
        if not self._method:
            raise RequestBuildError("Request method is required")
        if not self._url:
            raise RequestBuildError("Request URL is required")

        try:
            url = httpx.URL(self._url)
        except httpx.InvalidURL as e:
            raise RequestBuildError(f"Invalid request URL {self._url!r}: {e}") from e

        if not url.scheme or not url.host:
            raise RequestBuildError(f"Invalid request URL {self._url!r}: scheme and host are required")

        if self._query:
            params = httpx.QueryParams(url.params)
            for key, values in self._query.items():
                params = params.remove(key)
                for value in values:
                    params = params.add(key, value)
            url = url.copy_with(params=params)

        method = self._method
        headers = dict(self._headers)
        body = self._body

        # Form data forces a form-encoded POST
        if self._form:
            method = "POST"
            self._drop_header(headers, CONTENT_TYPE_HEADER)
            headers[CONTENT_TYPE_HEADER] = CONTENT_TYPE_FORM
            body = urlencode(self._form, doseq=True).encode("ascii")

        return Request(method=method, url=str(url), headers=headers, content=body)

    def _set_header(self, key: str, value: str) -> None:
        self._drop_header(self._headers, key)
        self._headers[key] = value

    @staticmethod
    def _drop_header(headers: dict[str, str], key: str) -> None:
        for existing in [name for name in headers if name.lower() == key.lower()]:
            del headers[existing]
