"""Render dispatcher — picks one delivery mode per request.

    SSR disabled          -> cached static document (possibly empty)
    streaming-eligible    -> StreamedDocument (head now, tail after render)
    everything else       -> synchronous assembly into one Response

The mode is chosen once, before any rendering, and never revisited.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Any

from perch._internal.invoke import invoke
from perch.context import g
from perch.document.assembler import assemble
from perch.document.shell import DocumentShell
from perch.document.streaming import StreamingAssembler, StreamingSession
from perch.errors import ConfigurationError
from perch.http.request import Request
from perch.http.response import Response, StreamedDocument
from perch.render.engine import RenderEngine
from perch.server.state import RenderState

logger = logging.getLogger("perch.server")

# Page loader: receives the request, returns enrichment data (or None)
type Loader = Callable[[Request], Any]


class Dispatcher:
    """Per-request mode selection over immutable startup state."""

    __slots__ = ("_engine", "_state", "streaming")

    def __init__(self, state: RenderState, engine: RenderEngine | None) -> None:
        if state.ssr_enabled and engine is None:
            msg = "Server-side rendering is enabled but no render engine was given."
            raise ConfigurationError(msg)
        self._state = state
        self._engine = engine
        self.streaming: StreamingAssembler | None = None
        if state.ssr_enabled:
            assert state.shell is not None
            assert engine is not None
            cfg = state.config
            self.streaming = StreamingAssembler(
                state.shell,
                engine.resolve_scripts_for_modules,
                global_name=cfg.hydration_global,
                tail_chunk_size=cfg.tail_chunk_size,
                timeout=cfg.render_timeout,
            )

    @property
    def state(self) -> RenderState:
        return self._state

    async def dispatch(
        self,
        request: Request,
        *,
        loader: Loader | None = None,
        streaming: bool = False,
    ) -> Response | StreamedDocument:
        """Run the loader (if any) and render *request* in the selected mode."""
        if not self._state.ssr_enabled:
            logger.debug("static document for %s", request.path)
            return self.static_response()

        data = await invoke(loader, request) if loader is not None else None
        if data is None:
            data = {}
        g.initial_data = data

        if streaming:
            return self.render_streaming(request.url, data)
        return self.render_sync(request.url, data)

    def static_response(self) -> Response:
        """The document cached at startup; empty if it was unavailable."""
        return Response(body=self._state.static_document)

    def render_sync(self, url: str, data: Any) -> Response:
        logger.info("sync render %s", url)
        engine, shell = self._require_ssr()
        result = engine.render(url, data)
        result.initial_data = data
        scripts: Sequence[str] = ()
        if result.modules:
            scripts = engine.resolve_scripts_for_modules(list(result.modules))
        body = assemble(
            shell,
            result,
            module_scripts=scripts,
            global_name=self._state.config.hydration_global,
        )
        return Response(body=body)

    def render_streaming(self, url: str, data: Any) -> StreamedDocument:
        logger.info("streaming render %s", url)
        engine, _ = self._require_ssr()
        result = engine.render_streaming(url, data)
        result.initial_data = data
        return StreamedDocument(session=StreamingSession.from_result(url, result))

    def _require_ssr(self) -> tuple[RenderEngine, DocumentShell]:
        if self._engine is None or self._state.shell is None:
            msg = "Rendering requested while server-side rendering is disabled."
            raise ConfigurationError(msg)
        return self._engine, self._state.shell
