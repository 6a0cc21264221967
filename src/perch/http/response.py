"""What pages and middleware hand back to the ASGI layer.

``Response`` is a buffered body. ``StreamedDocument`` stands for a
document a streaming session will write progressively. Both are frozen
and share the ``.with_*()`` setters, each returning a modified copy, so
middleware can add headers without caring which one it holds.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from perch.document.streaming import StreamingSession

HTML = "text/html; charset=utf-8"


class _Chainable:
    """Copy-on-write setters shared by the frozen response types."""

    __slots__ = ()

    status: int
    content_type: str
    headers: tuple[tuple[str, str], ...]

    def with_status(self, status: int) -> Self:
        return replace(self, status=status)  # type: ignore[type-var]

    def with_header(self, name: str, value: str) -> Self:
        return replace(self, headers=(*self.headers, (name, value)))  # type: ignore[type-var]

    def with_headers(self, headers: Mapping[str, str]) -> Self:
        return replace(self, headers=(*self.headers, *headers.items()))  # type: ignore[type-var]

    def with_content_type(self, content_type: str) -> Self:
        return replace(self, content_type=content_type)  # type: ignore[type-var]

    def header(self, name: str) -> str | None:
        """First value of header *name*, matched case-insensitively."""
        wanted = name.lower()
        return next((value for key, value in self.headers if key.lower() == wanted), None)


@dataclass(frozen=True, slots=True)
class Response(_Chainable):
    """A buffered response, sent as one body message with a length."""

    body: str | bytes = ""
    status: int = 200
    content_type: str = HTML
    headers: tuple[tuple[str, str], ...] = ()

    @property
    def body_bytes(self) -> bytes:
        body = self.body
        return body.encode("utf-8") if isinstance(body, str) else body

    @property
    def text(self) -> str:
        body = self.body
        return body.decode("utf-8") if isinstance(body, bytes) else body


@dataclass(frozen=True, slots=True)
class StreamedDocument(_Chainable):
    """A document delivered by a prepared ``StreamingSession``.

    The ASGI handler binds the session to the connection once middleware
    has returned. Status and headers are fixed when the head is written.
    """

    session: StreamingSession
    status: int = 200
    content_type: str = HTML
    headers: tuple[tuple[str, str], ...] = ()
