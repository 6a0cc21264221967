"""Perch exception hierarchy.

Shared across the router, dispatcher, assemblers, and ASGI handler so
every module raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when app configuration or registration is invalid."""


class StartupFatalError(PerchError):
    """Raised while loading process-wide render state.

    A missing or malformed manifest, or an unreadable inline runtime
    asset, cannot be recovered per request. The ASGI lifespan turns this
    into ``lifespan.startup.failed`` and the server refuses to start.
    """


class SerializationError(PerchError):
    """Initial data could not be encoded as JSON for hydration."""


class StreamError(PerchError):
    """The render engine's markup stream failed mid-flight.

    Handled inside the streaming session: logged, then the document tail
    is still written so the connection is never left open.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, middleware, or page handlers. The ASGI handler
    catches these and dispatches to the matching ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )


class UpstreamFetchError(HTTPError):
    """502 — an enrichment source was unreachable or answered non-2xx.

    ``upstream_status`` is ``None`` when no response was received at all.
    """

    def __init__(self, url: str, upstream_status: int | None = None, detail: str = "") -> None:
        if not detail:
            if upstream_status is None:
                detail = f"Upstream {url} unreachable"
            else:
                detail = f"Upstream {url} returned {upstream_status}"
        super().__init__(status=502, detail=detail)
        object.__setattr__(self, "_url", url)
        object.__setattr__(self, "_upstream_status", upstream_status)

    @property
    def url(self) -> str:
        return self._url  # type: ignore[attr-defined]

    @property
    def upstream_status(self) -> int | None:
        return self._upstream_status  # type: ignore[attr-defined]
