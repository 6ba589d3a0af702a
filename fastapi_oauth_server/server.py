"""
OAuth2 server adapter for FastAPI / Starlette.

Wraps a protocol engine and exposes three middlewares - authenticate, authorize and token -
each an async (request, call_next) -> Response callable. They can be mounted as Starlette
HTTP middleware (BaseHTTPMiddleware dispatch) or composed into a route with chain().
Request bodies are parsed here, so no separate body-parsing step is needed.
With use_error_handler=True, errors raised from a route chain reach the app's exception
handlers as usual; in HTTP-middleware mode the matching handler is looked up on the app
and called here, since the error would otherwise surface above ExceptionMiddleware.

    oauth = OAuthServer(MyEngine, model=my_model)
    app.add_api_route("/oauth/token", chain(oauth.token()), methods=["POST"])
    app.add_api_route("/secret", chain(oauth.authenticate(), endpoint=secret), methods=["GET"])
"""
import inspect
import logging
from typing import Any, Awaitable, Callable

from fastapi import Request, Response
from fastapi.concurrency import run_in_threadpool

from fastapi_oauth_server.config import AdapterOptions
from fastapi_oauth_server.engine import EngineResponse, ProtocolEngine
from fastapi_oauth_server.errors import OAuthError, ServerError
from fastapi_oauth_server.normalizer import build_engine_request, new_engine_response
from fastapi_oauth_server.rendering import render_error, render_response

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]
Middleware = Callable[[Request, CallNext], Awaitable[Response]]


class OAuthServer:
    """
    Binds one protocol engine to the adapter's middlewares.

    engine_factory is called once as engine_factory(model=..., **engine_options).
    Adapter-only keywords:
      use_error_handler: re-raise protocol errors to the app's exception handlers
        instead of rendering them here.
      continue_middleware: authorize()/token() call the next handler instead of
        rendering the engine response. authenticate() always continues.
    Raises InvalidArgumentError if model is missing.
    """

    def __init__(self, engine_factory: Callable[..., ProtocolEngine], **options: Any):
        self._options = AdapterOptions.from_kwargs(options)
        self.engine = engine_factory(model=self._options.model, **self._options.engine_options)
        logger.info(
            "OAuth server ready: engine=%s use_error_handler=%s continue_middleware=%s",
            type(self.engine).__name__,
            self._options.use_error_handler,
            self._options.continue_middleware,
        )

    @property
    def use_error_handler(self) -> bool:
        return self._options.use_error_handler

    @property
    def continue_middleware(self) -> bool:
        return self._options.continue_middleware

    def authenticate(self, options: dict | None = None) -> Middleware:
        """Validate the bearer token (RFC 6749 §7). On success request.state.oauth = {"token": ...}."""

        async def authenticate_middleware(request: Request, call_next: CallNext) -> Response:
            return await self._run_grant(
                "authenticate", request, call_next, options, result_key="token", renders=False
            )

        return authenticate_middleware

    def authorize(self, options: dict | None = None) -> Middleware:
        """Authorization endpoint (RFC 6749 §3.1). On success request.state.oauth = {"code": ...}."""

        async def authorize_middleware(request: Request, call_next: CallNext) -> Response:
            return await self._run_grant(
                "authorize", request, call_next, options, result_key="code", renders=True
            )

        return authorize_middleware

    def token(self, options: dict | None = None) -> Middleware:
        """Token endpoint (RFC 6749 §3.2). On success request.state.oauth = {"token": ...}."""

        async def token_middleware(request: Request, call_next: CallNext) -> Response:
            return await self._run_grant(
                "token", request, call_next, options, result_key="token", renders=True
            )

        return token_middleware

    async def _call_engine(self, operation: str, request: Request, engine_response: EngineResponse, options: dict | None):
        engine_request = await build_engine_request(request)
        method = getattr(self.engine, operation)
        if inspect.iscoroutinefunction(method):
            return await method(engine_request, engine_response, options)
        # Sync engines may block on model I/O
        result = await run_in_threadpool(method, engine_request, engine_response, options)
        # Plain callables may still hand back a coroutine (wrappers, partials)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _run_grant(
        self,
        operation: str,
        request: Request,
        call_next: CallNext,
        options: dict | None,
        *,
        result_key: str,
        renders: bool,
    ) -> Response:
        """
        Run one engine operation and dispatch the outcome.
        renders=False (authenticate): always continue on success; errors get no engine response.
        renders=True (authorize, token): render unless continue_middleware; errors keep engine headers.
        """
        engine_response = new_engine_response()
        try:
            result = await self._call_engine(operation, request, engine_response, options)
        except OAuthError as e:
            logger.debug("%s failed: %s (%s)", operation, e.name, e.code)
            return await self._handle_error(request, e, engine_response if renders else None)
        except Exception as e:
            logger.exception("%s: unexpected engine error", operation)
            error = ServerError(f"Server error: {e}", code=500, inner=e)
            error.__cause__ = e
            return await self._handle_error(request, error, engine_response if renders else None)

        request.state.oauth = {result_key: result}
        if not renders or self.continue_middleware:
            logger.debug("%s ok; continuing", operation)
            return await call_next(request)
        logger.debug("%s ok; rendering %s", operation, engine_response.status)
        return render_response(engine_response)

    async def _handle_error(self, request: Request, error: OAuthError, engine_response: EngineResponse | None) -> Response:
        if not self.use_error_handler:
            return render_error(error, engine_response)
        # ExceptionMiddleware marks the scope; without it we run above the app's handlers
        if "starlette.exception_handlers" not in request.scope:
            handler = _find_exception_handler(request, error)
            if handler is not None:
                if inspect.iscoroutinefunction(handler):
                    return await handler(request, error)
                return await run_in_threadpool(handler, request, error)
        raise error


def _find_exception_handler(request: Request, error: Exception):
    """Handler the app registered for the error class or its nearest base, if any."""
    handlers = getattr(request.scope.get("app"), "exception_handlers", None) or {}
    for cls in type(error).__mro__:
        if cls in handlers:
            return handlers[cls]
    return None
