"""Reference render engine backed by kida templates.

Maps request paths to templates and renders them with the request's
data. Templates record the client components they use by calling
``use_module()``; the engine turns those into script tags through the
build manifest once rendering is done::

    {# github.html #}
    {{ use_module("BranchList") }}
    <ul>{% for b in data.github %}<li>{{ b.name }}</li>{% end %}</ul>

Streamed renders use kida's ``render_stream()``, so ``modules`` keeps
growing until the last chunk has been produced.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

import anyio
from kida import Environment, FileSystemLoader

from perch.assets.manifest import Manifest
from perch.document.shell import script_src
from perch.render.engine import RenderResult

logger = logging.getLogger("perch.render")


class KidaRenderEngine:
    """Render engine over a kida ``Environment``.

    Args:
        env: The kida environment templates are loaded from.
        manifest: Build manifest used to resolve module scripts.
        pages: Request path -> template name.
        fallback: Template for every path not in *pages*.
        titles: Request path -> document title.
        public_path: URL prefix for module script ``src`` attributes.
    """

    __slots__ = ("_env", "_fallback", "_manifest", "_pages", "_public_path", "_titles")

    def __init__(
        self,
        env: Environment,
        manifest: Manifest,
        *,
        pages: Mapping[str, str] | None = None,
        fallback: str = "index.html",
        titles: Mapping[str, str] | None = None,
        public_path: str = "/",
    ) -> None:
        self._env = env
        self._manifest = manifest
        self._pages = dict(pages or {})
        self._fallback = fallback
        self._titles = dict(titles or {})
        self._public_path = public_path.rstrip("/") + "/"

    @classmethod
    def from_directory(
        cls,
        template_dir: str | Path,
        manifest: Manifest,
        **kwargs: Any,
    ) -> KidaRenderEngine:
        """Build an engine with a filesystem loader over *template_dir*."""
        env = Environment(loader=FileSystemLoader(str(template_dir)), autoescape=True)
        return cls(env, manifest, **kwargs)

    def render(self, url: str, data: Any) -> RenderResult:
        path = _path_of(url)
        modules: list[str] = []
        template = self._env.get_template(self._template_for(path))
        markup = template.render(self._context(url, data, modules))
        return RenderResult(markup=markup, modules=modules, title=self._titles.get(path))

    def render_streaming(self, url: str, data: Any) -> RenderResult:
        path = _path_of(url)
        modules: list[str] = []
        template = self._env.get_template(self._template_for(path))
        chunks: Iterator[str] = template.render_stream(self._context(url, data, modules))
        return RenderResult(markup=_aiter_chunks(chunks), modules=modules, title=self._titles.get(path))

    def resolve_scripts_for_modules(self, modules: Sequence[str]) -> list[str]:
        tags: list[str] = []
        seen: set[str] = set()
        for module in modules:
            if module in seen:
                continue
            seen.add(module)
            entry = self._manifest.get(f"{module}.js")
            if entry is None:
                logger.debug("no bundle for module %r", module)
                continue
            tags.append(script_src(self._public_path + entry))
        return tags

    def _template_for(self, path: str) -> str:
        return self._pages.get(path, self._fallback)

    @staticmethod
    def _context(url: str, data: Any, modules: list[str]) -> dict[str, Any]:
        def use_module(name: str) -> str:
            modules.append(name)
            return ""

        return {"url": url, "data": data, "use_module": use_module}


def _path_of(url: str) -> str:
    path = url.split("?", 1)[0]
    return path.rstrip("/") or "/"


async def _aiter_chunks(chunks: Iterator[str]) -> AsyncIterator[str]:
    for chunk in chunks:
        if chunk:
            yield chunk
        # Yield to the event loop so the sink drains between chunks.
        await anyio.sleep(0)
