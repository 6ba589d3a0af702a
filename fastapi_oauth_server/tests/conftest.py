"""
Pytest configuration for fastapi_oauth_server. Clears adapter env defaults and provides a
small JWT-backed engine so grant flows run end to end through FastAPI's TestClient.
"""
import os

# Adapter flags must come from test code, not the developer's shell
os.environ.pop("OAUTH_USE_ERROR_HANDLER", None)
os.environ.pop("OAUTH_CONTINUE_MIDDLEWARE", None)

import secrets
import time
from urllib.parse import urlencode

import jwt
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fastapi_oauth_server import (
    AccessDeniedError,
    InsufficientScopeError,
    InvalidClientError,
    InvalidRequestError,
    InvalidTokenError,
    UnauthorizedRequestError,
    UnsupportedGrantTypeError,
    UnsupportedResponseTypeError,
    chain,
)

SIGNING_SECRET = "test-signing-secret"
REDIRECT_URI = "http://127.0.0.1:8000/callback"


class InMemoryModel:
    """Client registry for the stub engine."""

    def __init__(self):
        self.clients = {
            "test-client": {"secret": "test-secret", "redirect_uris": [REDIRECT_URI]},
        }
        self.codes: dict[str, dict] = {}

    def get_client(self, client_id: str | None, client_secret: str | None = None) -> dict | None:
        client = self.clients.get(client_id or "")
        if client is None:
            return None
        if client_secret is not None and client_secret != client["secret"]:
            return None
        return client


class StubEngine:
    """
    Minimal engine: bearer JWT authentication, authorization-code issuance by redirect,
    and the client_credentials grant. authorize() is sync so the threadpool path is used.
    """

    def __init__(self, model, access_token_lifetime: int = 3600, **options):
        self.model = model
        self.access_token_lifetime = access_token_lifetime
        self.options = options

    async def authenticate(self, request, response, options=None):
        header = request.get("authorization")
        if not header:
            response.set("www-authenticate", 'Bearer realm="Service"')
            raise UnauthorizedRequestError("Unauthorized request: no authentication given")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise InvalidRequestError("Invalid request: malformed authorization header")
        try:
            claims = jwt.decode(token, SIGNING_SECRET, algorithms=["HS256"])
        except jwt.ExpiredSignatureError:
            raise UnauthorizedRequestError("Unauthorized request: access token has expired")
        except jwt.InvalidTokenError:
            raise InvalidTokenError("Invalid token: access token is invalid")
        required = (options or {}).get("scope")
        if required and required not in claims.get("scope", "").split():
            raise InsufficientScopeError("Insufficient scope: authorized scope is insufficient")
        return claims

    def authorize(self, request, response, options=None):
        params = request.query
        client = self.model.get_client(params.get("client_id"))
        if client is None:
            raise InvalidClientError("Invalid client: client credentials are invalid")
        redirect_uri = params.get("redirect_uri")
        if redirect_uri not in client["redirect_uris"]:
            raise InvalidClientError("Invalid client: `redirect_uri` does not match client value")
        response.set("x-oauth-step", "authorize")
        if params.get("response_type") != "code":
            raise UnsupportedResponseTypeError("Unsupported response type: `response_type` is not supported")
        if params.get("allowed") == "false":
            raise AccessDeniedError("Access denied: user denied access to application")
        code = secrets.token_urlsafe(16)
        self.model.codes[code] = {"client_id": params["client_id"], "redirect_uri": redirect_uri}
        query = {"code": code}
        if params.get("state"):
            query["state"] = params["state"]
        response.redirect(f"{redirect_uri}?{urlencode(query)}")
        return {"authorization_code": code, "client_id": params["client_id"], "redirect_uri": redirect_uri}

    async def token(self, request, response, options=None):
        if request.method != "POST":
            raise InvalidRequestError("Invalid request: method must be POST")
        if not request.is_form():
            raise InvalidRequestError("Invalid request: content must be application/x-www-form-urlencoded")
        grant_type = request.body.get("grant_type")
        if not grant_type:
            raise InvalidRequestError("Missing parameter: `grant_type`")
        if grant_type != "client_credentials":
            raise UnsupportedGrantTypeError("Unsupported grant type: `grant_type` is invalid")
        client_id = request.body.get("client_id")
        client = self.model.get_client(client_id, request.body.get("client_secret", ""))
        if client is None:
            raise InvalidClientError("Invalid client: client is invalid")
        scope = request.body.get("scope", "")
        access_token = make_access_token(client_id, scope, self.access_token_lifetime)
        response.body = {
            "access_token": access_token,
            "token_type": "Bearer",
            "expires_in": self.access_token_lifetime,
            "scope": scope,
        }
        response.set("cache-control", "no-store")
        response.set("pragma", "no-cache")
        return {"access_token": access_token, "client_id": client_id, "scope": scope}


class BrokenEngine:
    """Every operation fails with a non-protocol exception."""

    def __init__(self, model, **options):
        self.model = model

    async def authenticate(self, request, response, options=None):
        raise RuntimeError("model unavailable")

    async def authorize(self, request, response, options=None):
        response.set("x-oauth-step", "authorize")
        raise RuntimeError("model unavailable")

    async def token(self, request, response, options=None):
        raise RuntimeError("model unavailable")


def make_access_token(sub: str, scope: str, lifetime: int = 3600) -> str:
    now = int(time.time())
    return jwt.encode(
        {"sub": sub, "scope": scope, "iat": now, "exp": now + lifetime},
        SIGNING_SECRET,
        algorithm="HS256",
    )


async def echo_oauth(request: Request):
    """Downstream handler: reports what the adapter left on the side-channel."""
    return JSONResponse({"downstream": True, "oauth": request.state.oauth})


def build_app(oauth, *, authenticate_options=None) -> FastAPI:
    app = FastAPI()
    app.add_api_route("/oauth/token", chain(oauth.token(), endpoint=echo_oauth), methods=["POST"])
    app.add_api_route("/oauth/authorize", chain(oauth.authorize(), endpoint=echo_oauth), methods=["GET"])
    app.add_api_route("/secret", chain(oauth.authenticate(), endpoint=echo_oauth), methods=["GET"])
    app.add_api_route(
        "/admin",
        chain(oauth.authenticate(authenticate_options or {"scope": "api.admin"}), endpoint=echo_oauth),
        methods=["GET"],
    )
    return app


@pytest.fixture
def model():
    return InMemoryModel()


@pytest.fixture
def stub_engine_class():
    return StubEngine


@pytest.fixture
def broken_engine_class():
    return BrokenEngine


@pytest.fixture
def app_factory():
    return build_app


@pytest.fixture
def issue_token():
    return make_access_token
