"""
Route-level handler chain: run (request, call_next) middlewares in order, then an endpoint.
Lets a single route stack oauth.authenticate() / authorize() / token() with its own handler.
"""
import inspect
import logging
from typing import Any, Callable

from fastapi import Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

logger = logging.getLogger(__name__)


def chain(*middlewares: Callable, endpoint: Callable[[Request], Any] | None = None):
    """
    Compose middlewares into one endpoint usable with app.add_api_route / add_route.
    When the last middleware calls call_next and there is no endpoint, respond 404.
    Sync endpoints run in the threadpool.
    """

    async def dispatch(index: int, request: Request) -> Response:
        if index < len(middlewares):

            async def call_next(req: Request) -> Response:
                return await dispatch(index + 1, req)

            return await middlewares[index](request, call_next)
        if endpoint is None:
            logger.debug("chain exhausted without endpoint: %s %s", request.method, request.url.path)
            return PlainTextResponse("Not Found", status_code=404)
        if inspect.iscoroutinefunction(endpoint):
            return await endpoint(request)
        return await run_in_threadpool(endpoint, request)

    async def chained_endpoint(request: Request):
        return await dispatch(0, request)

    return chained_endpoint
