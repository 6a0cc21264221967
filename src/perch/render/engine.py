"""Render engine interface.

The render engine turns a URL and a data payload into markup. Perch
only composes its output into a document, so the engine is consumed
through this protocol and never inspected further.
"""

from collections.abc import AsyncIterable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

type Markup = str | AsyncIterable[str | bytes] | Iterable[str | bytes]


@dataclass(slots=True)
class RenderResult:
    """One render's output plus the metadata the assemblers consume.

    Fields and defaults:

    - ``markup``: the rendered HTML, or a chunk stream of it.
    - ``initial_data``: hydration payload; ``None`` is embedded as ``{}``.
    - ``modules``: component identifiers used by the render, in order.
      For streamed renders the engine may keep appending until the
      stream ends, so read it only after the markup is exhausted.
    - ``title``: document title; ``None`` falls back to the configured
      default.
    """

    markup: Markup = ""
    initial_data: Any = None
    modules: list[str] = field(default_factory=list)
    title: str | None = None


class RenderEngine(Protocol):
    """What perch needs from a render engine."""

    def render(self, url: str, data: Any) -> RenderResult:
        """Render *url* to a complete markup string."""
        ...

    def render_streaming(self, url: str, data: Any) -> RenderResult:
        """Render *url* to a markup stream."""
        ...

    def resolve_scripts_for_modules(self, modules: Sequence[str]) -> list[str]:
        """Script tags for the given components. Valid only after rendering."""
        ...
