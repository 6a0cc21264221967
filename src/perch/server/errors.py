"""Turning exceptions into error responses.

``HTTPError`` subclasses keep their own status (404, 405, 502); anything
else, ``SerializationError`` included, is a 500. An ``@app.error()``
handler is looked up by exception class along the MRO, then by status
code. Without one the client gets a short plain-text body, which
carries the exception text only in debug mode.
"""

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

from perch._internal.invoke import invoke
from perch.errors import HTTPError, SerializationError, UpstreamFetchError
from perch.http.request import Request
from perch.http.response import Response

logger = logging.getLogger("perch.server")

PLAIN_TEXT = "text/plain; charset=utf-8"

type ErrorHandlers = Mapping[int | type, Callable[..., Any]]


async def error_response(
    exc: Exception,
    request: Request,
    handlers: ErrorHandlers,
    *,
    debug: bool = False,
) -> Response:
    """Build the response for *exc* raised while handling *request*."""
    status = exc.status if isinstance(exc, HTTPError) else 500
    _log(exc, request, status)

    handler = find_handler(handlers, exc, status)
    if handler is not None:
        response = await run_error_handler(handler, request, exc)
        # A bare body from the handler takes the error's status
        if response.status == 200:
            response = response.with_status(status)
        return response

    if isinstance(exc, HTTPError):
        return _http_error_body(exc, debug)
    return Response(body=_internal_error_text(exc, debug), status=500, content_type=PLAIN_TEXT)


def find_handler(handlers: ErrorHandlers, exc: Exception, status: int) -> Callable[..., Any] | None:
    """Most specific handler for *exc*: by class first, then by *status*."""
    for cls in type(exc).__mro__:
        if cls in handlers:
            return handlers[cls]
    return handlers.get(status)


async def run_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
) -> Response:
    """Call *handler* with as many of ``(request, exc)`` as it accepts.

    Sync and async handlers both work. A non-Response result becomes an
    HTML body.
    """
    arity = len(inspect.signature(handler).parameters)
    result = await invoke(handler, *(request, exc)[:arity])
    if isinstance(result, Response):
        return result
    return Response(body=str(result))


def _http_error_body(exc: HTTPError, debug: bool) -> Response:
    text = exc.detail or f"Error {exc.status}"
    if debug and exc.detail:
        text = f"{exc.status}: {exc.detail}"
    return Response(body=text, status=exc.status, content_type=PLAIN_TEXT, headers=exc.headers)


def _internal_error_text(exc: Exception, debug: bool) -> str:
    if debug:
        return f"Internal Server Error: {exc}"
    if isinstance(exc, SerializationError):
        return "Internal Server Error: initial data could not be serialized"
    return "Internal Server Error"


def _log(exc: Exception, request: Request, status: int) -> None:
    if isinstance(exc, UpstreamFetchError):
        logger.warning(
            "%d %s %s: upstream status %s",
            status, request.method, request.path, exc.upstream_status,
        )
    elif isinstance(exc, HTTPError):
        logger.debug("%d %s %s: %s", status, request.method, request.path, exc.detail)
    else:
        logger.exception("%d %s %s", status, request.method, request.path)
