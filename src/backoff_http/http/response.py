import json
from dataclasses import dataclass, field
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter

T = TypeVar("T")


@dataclass(frozen=True)
class Response:
    """Fully materialized HTTP response"""

    status: str
    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: bytes = b""

    @classmethod
    def from_httpx(cls, response: httpx.Response, body: bytes | None = None) -> "Response":
        """Snapshot an httpx response; body defaults to the already-read content"""
        return cls(
            status=f"{response.status_code} {response.reason_phrase}".rstrip(),
            status_code=response.status_code,
            headers=httpx.Headers(response.headers),
            body=response.content if body is None else body,
        )

    @property
    def text(self) -> str:
        return self.body.decode(self._encoding(), errors="replace")

    def json(self) -> Any:
        return json.loads(self.body)

    def unmarshal(self, type_: type[T]) -> T:
        """Decode the JSON body into `type_`"""
        return unmarshal(self.body, type_)

    def _encoding(self) -> str:
        content_type = self.headers.get("content-type", "")
        for param in content_type.split(";")[1:]:
            key, _, value = param.strip().partition("=")
            if key.lower() == "charset" and value:
                return value.strip('"')
        return "utf-8"


def unmarshal(body: bytes | str, type_: type[T]) -> T:
    """Validate a JSON document against `type_` (models, dataclasses, builtins)"""
    return TypeAdapter(type_).validate_json(body)
