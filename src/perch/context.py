"""Per-request context.

The ASGI handler opens ``request_scope(request)`` around the middleware
chain. Inside it, ``get_request()`` returns the request being handled
and ``g`` is that request's state bag (``NoCacheState`` seeds
``g.initial_data``). Both live in ContextVars, so concurrent requests
never share state.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from perch.http.request import Request

request_var: ContextVar[Request] = ContextVar("perch.request")
_state_var: ContextVar[dict[str, Any] | None] = ContextVar("perch.state", default=None)


def get_request() -> Request:
    """The request being handled. Raises ``LookupError`` outside one."""
    return request_var.get()


@contextmanager
def request_scope(request: Request) -> Iterator[None]:
    """Bind *request* and a fresh, empty state bag for the block."""
    request_token = request_var.set(request)
    state_token = _state_var.set({})
    try:
        yield
    finally:
        _state_var.reset(state_token)
        request_var.reset(request_token)


def _state() -> dict[str, Any]:
    state = _state_var.get()
    if state is None:
        state = {}
        _state_var.set(state)
    return state


def _missing(name: str) -> str:
    return f"g.{name} is not set for this request"


class RequestState:
    """Attribute access to the current request's state bag.

    Usage::

        from perch.context import g

        async def add_user(request, next):
            g.initial_data["user"] = await load_user(request)
            return await next(request)
    """

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        try:
            return _state()[name]
        except KeyError:
            raise AttributeError(_missing(name)) from None

    def __setattr__(self, name: str, value: Any) -> None:
        _state()[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del _state()[name]
        except KeyError:
            raise AttributeError(_missing(name)) from None

    def __contains__(self, name: str) -> bool:
        return name in _state()

    def get(self, name: str, default: Any = None) -> Any:
        return _state().get(name, default)

    def __repr__(self) -> str:
        return f"<g {_state()!r}>"


g = RequestState()
"""The current request's state bag."""
