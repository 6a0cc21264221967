"""Shared fixtures: an on-disk client build and a scriptable render engine."""

import json
from collections.abc import AsyncIterator, Sequence
from pathlib import Path
from typing import Any

import anyio
import pytest

from perch.assets.manifest import Manifest, load_manifest
from perch.config import AppConfig
from perch.document.shell import DocumentShell, build_shell, script_src
from perch.render.engine import RenderResult

RUNTIME_SOURCE = "window.webpackJsonp=[];"

MANIFEST = {
    "runtime.js": "runtime.1a2b.js",
    "app.js": "app.3c4d.js",
    "app.css": "app.5e6f.css",
    "Widget.js": "widget.7a8b.js",
}

STATIC_DOCUMENT = "<!DOCTYPE html><html><body><div id=\"app\"></div></body></html>"


class FakeEngine:
    """Render engine with canned output.

    Streamed renders yield *chunks* one at a time and only append
    *modules* after the last chunk, like an engine that discovers
    components while rendering.
    """

    def __init__(
        self,
        markup: str = "<p>hello</p>",
        *,
        chunks: Sequence[str] = ("<p>", "hello", "</p>"),
        modules: Sequence[str] = (),
        title: str | None = None,
        fail_after: int | None = None,
        delay: float = 0.0,
    ) -> None:
        self.markup = markup
        self.chunks = tuple(chunks)
        self.modules = tuple(modules)
        self.title = title
        self.fail_after = fail_after
        self.delay = delay
        self.calls: list[tuple[str, str, Any]] = []
        self.resolved: list[list[str]] = []
        self.pulled = 0

    def render(self, url: str, data: Any) -> RenderResult:
        self.calls.append(("render", url, data))
        return RenderResult(markup=self.markup, modules=list(self.modules), title=self.title)

    def render_streaming(self, url: str, data: Any) -> RenderResult:
        self.calls.append(("render_streaming", url, data))
        modules: list[str] = []
        return RenderResult(markup=self._stream(modules), modules=modules, title=self.title)

    def resolve_scripts_for_modules(self, modules: Sequence[str]) -> list[str]:
        self.resolved.append(list(modules))
        return [script_src(f"/{name.lower()}.js") for name in modules]

    async def _stream(self, modules: list[str]) -> AsyncIterator[str]:
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index == self.fail_after:
                raise RuntimeError("render exploded")
            if self.delay:
                await anyio.sleep(self.delay)
            self.pulled += 1
            yield chunk
        modules.extend(self.modules)


def write_build(
    directory: Path,
    manifest: dict[str, Any] | None = None,
    *,
    index: str | None = STATIC_DOCUMENT,
) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    entries = MANIFEST if manifest is None else manifest
    (directory / "manifest.json").write_text(json.dumps(entries), encoding="utf-8")
    (directory / "runtime.1a2b.js").write_text(RUNTIME_SOURCE, encoding="utf-8")
    (directory / "app.3c4d.js").write_text("console.log('app');", encoding="utf-8")
    (directory / "app.5e6f.css").write_text("body{margin:0}", encoding="utf-8")
    (directory / "widget.7a8b.js").write_text("console.log('widget');", encoding="utf-8")
    if index is not None:
        (directory / "index.html").write_text(index, encoding="utf-8")
    return directory


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """A production client build with manifest, bundles, and index.html."""
    return write_build(tmp_path / "build")


@pytest.fixture
def manifest(build_dir: Path) -> Manifest:
    return load_manifest(build_dir / "manifest.json")


@pytest.fixture
def config(build_dir: Path) -> AppConfig:
    return AppConfig(build_dir=build_dir)


@pytest.fixture
def shell(config: AppConfig, manifest: Manifest) -> DocumentShell:
    return build_shell(config, manifest)


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()
