"""Per-request state bag and ``Cache-Control: no-cache``.

Installed first by ``App`` so it wraps every page, whatever the
delivery mode.
"""

from perch.context import g
from perch.http.request import Request
from perch.middleware.protocol import AnyResponse, Next


class NoCacheState:
    """Seed ``g.initial_data`` and mark every response ``no-cache``."""

    __slots__ = ("value",)

    def __init__(self, value: str = "no-cache") -> None:
        self.value = value

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        g.initial_data = {}
        response = await next(request)
        return response.with_header("Cache-Control", self.value)
