"""
Turn engine results and protocol errors into Starlette responses.
Headers from the engine are always copied before status and body are fixed.
"""
import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from fastapi_oauth_server.engine import EngineResponse
from fastapi_oauth_server.errors import OAuthError, UnauthorizedRequestError

logger = logging.getLogger(__name__)


def _copy_headers(engine_response: EngineResponse | None) -> dict[str, str]:
    """Engines may write headers directly; names are lower-cased so lookups are reliable."""
    if engine_response is None:
        return {}
    return {name.lower(): value for name, value in engine_response.headers.items()}


def render_response(engine_response: EngineResponse) -> Response:
    """
    Render a successful engine response. A 302 becomes a redirect to the engine's
    location header; location is removed from the copied headers so it is sent once.
    """
    headers = _copy_headers(engine_response)
    if engine_response.status == 302:
        location = headers.pop("location", None)
        if location is None:
            # Redirect without a target: pass it through as-is rather than guess one
            logger.debug("302 engine response without location header")
            return Response(status_code=302, headers=headers)
        return RedirectResponse(url=location, status_code=302, headers=headers)

    body = engine_response.body
    if body is None:
        return Response(status_code=engine_response.status, headers=headers)
    if isinstance(body, (bytes, str)):
        media_type = None if "content-type" in headers else "text/plain"
        return Response(content=body, status_code=engine_response.status, headers=headers, media_type=media_type)
    return JSONResponse(content=body, status_code=engine_response.status, headers=headers)


def error_body(error: OAuthError) -> dict:
    return {"error": error.name, "error_description": error.message}


def render_error(error: OAuthError, engine_response: EngineResponse | None = None) -> Response:
    """
    Render a protocol error locally. Headers the engine already set (e.g. WWW-Authenticate)
    are kept. UnauthorizedRequestError gets an empty body (RFC 6750 §3.1).
    """
    headers = _copy_headers(engine_response)
    if isinstance(error, UnauthorizedRequestError):
        return Response(status_code=error.code, headers=headers)
    return JSONResponse(content=error_body(error), status_code=error.code, headers=headers)


async def oauth_error_handler(request: Request, exc: OAuthError) -> Response:
    """
    Exception handler for apps running with use_error_handler=True that still want
    the standard error shape: app.add_exception_handler(OAuthError, oauth_error_handler).
    """
    logger.debug("oauth error on %s: %s (%s)", request.url.path, exc.name, exc.code)
    return render_error(exc)
