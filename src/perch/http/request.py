"""The request as page rendering sees it.

Method, path, query string, headers and the matched path params. Pages
are GET documents, so the body is never read.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from perch._internal.asgi import Scope
from perch.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request."""

    method: str
    path: str
    headers: Headers
    query_string: bytes = b""
    path_params: dict[str, str] = field(default_factory=dict)
    http_version: str = "1.1"
    client: tuple[str, int] | None = None

    @property
    def url(self) -> str:
        """Path plus query string, the URL handed to the render engine."""
        if self.query_string:
            return f"{self.path}?{self.query_string.decode('latin-1')}"
        return self.path

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        """Return a copy carrying the matched route's path params."""
        return replace(self, path_params=path_params)

    @classmethod
    def from_scope(cls, scope: Scope) -> Request:
        """Build a Request from an ASGI HTTP scope."""
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(scope.get("headers", ())),
            query_string=scope.get("query_string", b""),
            http_version=scope.get("http_version", "1.1"),
            client=tuple(client) if client else None,
        )
