"""
Protocol engine boundary: the request/response carriers exchanged with the engine
and the interface the engine must implement. Grant logic lives in the engine, not here.
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Protocol

from fastapi.datastructures import Headers

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class EngineRequest:
    """Read-only snapshot of one inbound HTTP request."""

    method: str
    headers: Headers
    query: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    has_body: bool = False

    def get(self, name: str, default: str | None = None) -> str | None:
        """Header value by case-insensitive name."""
        return self.headers.get(name, default)

    def is_form(self) -> bool:
        content_type = self.headers.get("content-type", "")
        return content_type.split(";", 1)[0].strip().lower() == FORM_CONTENT_TYPE


@dataclass
class EngineResponse:
    """Populated by the engine; read by the response and error renderers."""

    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    def get(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def set(self, name: str, value: str) -> None:
        self.headers[name.lower()] = value

    def redirect(self, url: str) -> None:
        self.set("location", url)
        self.status = 302


class ProtocolEngine(Protocol):
    """
    An OAuth2 authorization-server engine. Each operation either returns its result
    (token or authorization code) or raises an OAuthError. Operations may be plain
    functions or coroutine functions.
    """

    def authenticate(
        self, request: EngineRequest, response: EngineResponse, options: dict | None = None
    ) -> Any | Awaitable[Any]: ...

    def authorize(
        self, request: EngineRequest, response: EngineResponse, options: dict | None = None
    ) -> Any | Awaitable[Any]: ...

    def token(
        self, request: EngineRequest, response: EngineResponse, options: dict | None = None
    ) -> Any | Awaitable[Any]: ...
