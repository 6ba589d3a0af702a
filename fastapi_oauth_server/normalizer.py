"""
Build the engine's request/response carriers from a Starlette request.
Body parsing happens here: form bodies (urlencoded or multipart) and JSON bodies become a dict.
"""
import json
import logging

from fastapi import Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from fastapi_oauth_server.engine import EngineRequest, EngineResponse
from fastapi_oauth_server.errors import InvalidRequestError

logger = logging.getLogger(__name__)

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _media_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";", 1)[0].strip().lower()


async def _parse_body(request: Request) -> tuple[dict, bool]:
    """Return (parsed body, raw body present)."""
    media_type = _media_type(request)
    if media_type in _FORM_TYPES:
        try:
            form = await request.form()
        except (StarletteHTTPException, MultiPartException) as e:
            detail = getattr(e, "detail", None) or getattr(e, "message", None) or str(e)
            raise InvalidRequestError(f"Invalid request: malformed form body ({detail})") from e
        return dict(form), bool(form)
    raw = await request.body()
    if not raw:
        return {}, False
    if media_type == "application/json" or media_type.endswith("+json"):
        try:
            data = json.loads(raw)
        except ValueError:
            raise InvalidRequestError("Invalid request: body is not valid JSON")
        # Only objects map onto OAuth2 parameters
        return (data if isinstance(data, dict) else {}), True
    return {}, True


async def build_engine_request(request: Request) -> EngineRequest:
    body, has_body = await _parse_body(request)
    engine_request = EngineRequest(
        method=request.method.upper(),
        headers=request.headers,
        query=dict(request.query_params),
        body=body,
        cookies=dict(request.cookies),
        has_body=has_body,
    )
    logger.debug(
        "normalized %s %s (body fields=%d)", engine_request.method, request.url.path, len(body)
    )
    return engine_request


def new_engine_response() -> EngineResponse:
    """Fresh response carrier; one per invocation, never shared."""
    return EngineResponse()
