"""Invoke helpers — call sync or async callables uniformly.

Page handlers, error handlers, and lifecycle hooks can be ``def`` or
``async def``. This keeps the sync/async check in exactly one place.
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *handler* and await the result if it's awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
