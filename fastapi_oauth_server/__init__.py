"""FastAPI / Starlette adapter for an OAuth2 authorization-server engine."""
from fastapi_oauth_server.chain import chain
from fastapi_oauth_server.engine import EngineRequest, EngineResponse, ProtocolEngine
from fastapi_oauth_server.errors import (
    AccessDeniedError,
    InsufficientScopeError,
    InvalidArgumentError,
    InvalidClientError,
    InvalidGrantError,
    InvalidRequestError,
    InvalidScopeError,
    InvalidTokenError,
    OAuthError,
    ServerError,
    UnauthorizedClientError,
    UnauthorizedRequestError,
    UnsupportedGrantTypeError,
    UnsupportedResponseTypeError,
)
from fastapi_oauth_server.rendering import oauth_error_handler
from fastapi_oauth_server.server import OAuthServer

__all__ = [
    "AccessDeniedError",
    "EngineRequest",
    "EngineResponse",
    "InsufficientScopeError",
    "InvalidArgumentError",
    "InvalidClientError",
    "InvalidGrantError",
    "InvalidRequestError",
    "InvalidScopeError",
    "InvalidTokenError",
    "OAuthError",
    "OAuthServer",
    "ProtocolEngine",
    "ServerError",
    "UnauthorizedClientError",
    "UnauthorizedRequestError",
    "UnsupportedGrantTypeError",
    "UnsupportedResponseTypeError",
    "chain",
    "oauth_error_handler",
]
