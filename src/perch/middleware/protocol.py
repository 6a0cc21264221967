"""Middleware shape and the ``Next`` alias.

Middleware is an async callable taking the request and the rest of the
chain::

    async def mw(request: Request, next: Next) -> AnyResponse: ...

It can be a function or an object with ``__call__``. What ``next``
returns is either a buffered ``Response`` or a ``StreamedDocument``;
nothing has reached the socket yet in either case, so headers added
with ``.with_header()`` still make it into the response head.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from perch.http.request import Request
from perch.http.response import Response, StreamedDocument

type AnyResponse = Response | StreamedDocument

# Rest of the chain, ending in page dispatch
type Next = Callable[[Request], Awaitable[AnyResponse]]


class Middleware(Protocol):
    """Structural type for middleware.

    Example, tagging every page with the worker that rendered it::

        async def served_by(request: Request, next: Next) -> AnyResponse:
            response = await next(request)
            return response.with_header("X-Served-By", socket.gethostname())
    """

    async def __call__(self, request: Request, next: Next) -> AnyResponse: ...
