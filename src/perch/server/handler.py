"""ASGI handler: one HTTP request through middleware, routing and a page.

Besides the sink, this is the only place that sees raw ASGI. The
request is routed inside the middleware chain, so ``NoCacheState`` and
user middleware wrap 404s and 405s too. Whatever the chain produces,
or the error response that replaces it, is then sent buffered or
streamed.
"""

from collections.abc import Callable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.context import request_scope
from perch.document.streaming import StreamingAssembler
from perch.http.request import Request
from perch.http.response import Response, StreamedDocument
from perch.middleware.protocol import AnyResponse, Next
from perch.routing.router import Router
from perch.server.errors import ErrorHandlers, error_response
from perch.server.sender import send_response, send_streamed_document


def build_chain(router: Router, middleware: tuple[Callable[..., Any], ...]) -> Next:
    """Compose *middleware* around page dispatch, outermost first."""

    async def dispatch(request: Request) -> AnyResponse:
        match = router.match(request.method, request.path)
        return await invoke(match.route.handler, request.with_path_params(match.path_params))

    chain: Next = dispatch
    for mw in reversed(middleware):

        async def link(request: Request, _mw: Any = mw, _next: Next = chain) -> AnyResponse:
            return await _mw(request, _next)

        chain = link
    return chain


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    chain: Next,
    error_handlers: ErrorHandlers,
    streaming: StreamingAssembler | None,
    debug: bool,
    high_water_mark: int = 16,
) -> None:
    """Run one HTTP request through *chain* and send the result.

    *chain* is the composed middleware and dispatch from ``build_chain``.
    """
    if scope["type"] != "http":
        return

    request = Request.from_scope(scope)
    with request_scope(request):
        try:
            response = await chain(request)
        except Exception as exc:
            response = await error_response(exc, request, error_handlers, debug=debug)
            response = response.with_header("Cache-Control", "no-cache")

    if isinstance(response, StreamedDocument):
        if streaming is None:
            msg = "StreamedDocument returned but streaming is not configured."
            raise RuntimeError(msg)
        await send_streamed_document(
            response,
            streaming,
            send,
            receive,
            high_water_mark=high_water_mark,
        )
    elif isinstance(response, Response):
        await send_response(response, send)
    else:
        msg = f"Handler returned {type(response).__name__}, expected Response or StreamedDocument"
        raise TypeError(msg)
