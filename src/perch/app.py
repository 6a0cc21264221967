"""The perch application.

Setup is mutable: pages, error handlers, middleware and lifespan hooks
are registered on the instance. The first request, the ASGI lifespan
startup, or ``run()`` compiles it. That loads the render state
(manifest, document shell, cached static document), builds the engine,
and fixes the route table and middleware chain. Registering anything
afterwards raises.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.config import AppConfig
from perch.errors import StartupFatalError
from perch.http.request import Request
from perch.middleware.assets import StaticAssets
from perch.middleware.no_cache import NoCacheState
from perch.middleware.protocol import AnyResponse, Middleware, Next
from perch.render.engine import RenderEngine
from perch.routing.route import Route
from perch.routing.router import Router
from perch.server.dispatcher import Dispatcher, Loader
from perch.server.handler import build_chain, handle_request
from perch.server.state import RenderState, load_render_state

logger = logging.getLogger("perch.server")

type EngineFactory = Callable[[RenderState], RenderEngine]
type ErrorHandler = Callable[..., Any]
type Phase = Literal["startup", "shutdown"]


@dataclass(frozen=True, slots=True)
class Page:
    """A registered page.

    ``streaming=None`` defers to ``AppConfig.streaming_routes``.
    """

    path: str
    loader: Loader | None = None
    streaming: bool | None = None
    name: str | None = None


@dataclass(frozen=True, slots=True)
class _Compiled:
    chain: Next
    dispatcher: Dispatcher


class App:
    """The perch application.

    Usage::

        app = App(AppConfig(build_dir="build/app"), engine=make_engine)

        @app.page("/github", streaming=True)
        async def github(request):
            return {"github": await github_branches("jasonboy/wechat-jssdk")}

    Paths without a page of their own are rendered by a catch-all page
    that has no loader.

    *engine* is a ready ``RenderEngine`` or a factory called with the
    startup ``RenderState``, for engines that need the manifest.
    """

    __slots__ = (
        "_compiled",
        "_engine",
        "_error_handlers",
        "_hooks",
        "_lock",
        "_middleware",
        "_pages",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        engine: RenderEngine | EngineFactory | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._engine = engine
        self._pages: list[Page] = []
        self._middleware: list[Middleware] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._hooks: dict[Phase, list[Callable[..., Any]]] = {"startup": [], "shutdown": []}
        self._lock = threading.Lock()
        self._compiled: _Compiled | None = None

    # -- Setup --

    def page(
        self,
        path: str,
        *,
        streaming: bool | None = None,
        name: str | None = None,
    ) -> Callable[[Loader], Loader]:
        """Register a page whose loader supplies its initial data.

        Args:
            path: Route pattern below ``config.app_prefix``; ``{name}``
                captures one segment into ``request.path_params``.
            streaming: Force streamed or buffered delivery. ``None``
                streams when *path* is in ``config.streaming_routes``.
            name: Optional route name.

        The loader gets the ``Request`` and may be sync or async. What
        it returns (``None`` meaning nothing) is handed to the render
        engine and embedded as hydration data.
        """

        def decorator(loader: Loader) -> Loader:
            self._check_open()
            self._pages.append(Page(path, loader, streaming, name))
            return loader

        return decorator

    def error(self, code_or_exception: int | type) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register the response for a status code or an exception class.

        The handler may take ``()``, ``(request)`` or ``(request, exc)``.
        """

        def decorator(handler: ErrorHandler) -> ErrorHandler:
            self._check_open()
            self._error_handlers[code_or_exception] = handler
            return handler

        return decorator

    def add_middleware(self, middleware: Middleware) -> None:
        """Append *middleware*. It runs inside the no-cache/state layer."""
        self._check_open()
        self._middleware.append(middleware)

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        self._check_open()
        self._hooks["startup"].append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        self._check_open()
        self._hooks["shutdown"].append(func)
        return func

    @property
    def pages(self) -> tuple[Page, ...]:
        """Pages registered so far, in registration order."""
        return tuple(self._pages)

    @property
    def compiled(self) -> bool:
        return self._compiled is not None

    @property
    def dispatcher(self) -> Dispatcher:
        """The render dispatcher. Compiles the app on first access."""
        return self.compile().dispatcher

    # -- Serving --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Compile the app and serve it with pounce.

        Debug mode runs one worker with auto-reload.
        """
        self.compile()

        from perch.server.dev import run_server

        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            workers=1 if self.config.debug else self.config.workers,
            reload=self.config.debug,
            log_level=self.config.log_level,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return

        compiled = self.compile()
        await handle_request(
            scope,
            receive,
            send,
            chain=compiled.chain,
            error_handlers=self._error_handlers,
            streaming=compiled.dispatcher.streaming,
            debug=self.config.debug,
            high_water_mark=self.config.sink_high_water_mark,
        )

    async def run_hooks(self, phase: Phase) -> None:
        """Run the ``on_startup`` or ``on_shutdown`` hooks in order."""
        for hook in self._hooks[phase]:
            await invoke(hook)

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        # A bad manifest surfaces here as startup.failed, before any request
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    self.compile()
                    await self.run_hooks("startup")
                except Exception as exc:
                    logger.critical("startup failed: %s", exc)
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await self.run_hooks("shutdown")
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Compilation --

    def compile(self) -> _Compiled:
        """Load render state and fix routes and middleware, once.

        Safe to call from several threads; only the first call builds.

        Raises:
            StartupFatalError: the manifest or runtime chunk could not be
                loaded, or SSR is on without a render engine.
        """
        compiled = self._compiled
        if compiled is None:
            with self._lock:
                if self._compiled is None:
                    self._compiled = self._build()
                compiled = self._compiled
        return compiled

    def _build(self) -> _Compiled:
        state = load_render_state(self.config)
        dispatcher = Dispatcher(state, self._make_engine(state))

        router = Router()
        prefix = self.config.route_prefix
        fallbacks = (Page("/", name="index"), Page("/{path:path}", name="catch_all"))
        for page in (*self._pages, *fallbacks):
            handler = self._page_handler(dispatcher, page)
            router.add(Route(prefix + page.path, handler, page.name))
        router.compile()

        return _Compiled(
            chain=build_chain(router, self._middleware_stack(state)),
            dispatcher=dispatcher,
        )

    def _make_engine(self, state: RenderState) -> RenderEngine | None:
        if not state.ssr_enabled:
            return None
        if self._engine is None:
            msg = "Server-side rendering is enabled but no render engine was configured."
            raise StartupFatalError(msg)
        if hasattr(self._engine, "render"):
            return self._engine  # type: ignore[return-value]
        return self._engine(state)  # type: ignore[operator]

    def _middleware_stack(self, state: RenderState) -> tuple[Callable[..., Any], ...]:
        # Build files are served ahead of the no-cache layer so they keep
        # their immutable cache header
        stack: list[Callable[..., Any]] = []
        cfg = self.config
        if state.ssr_enabled and cfg.serve_assets:
            stack.append(
                StaticAssets(
                    cfg.build_path,
                    cfg.public_path,
                    exclude=(cfg.index_name, cfg.manifest_name),
                )
            )
        stack.append(NoCacheState())
        stack.extend(self._middleware)
        return tuple(stack)

    def _page_handler(self, dispatcher: Dispatcher, page: Page) -> Callable[[Request], Any]:
        prefix = self.config.route_prefix
        streaming_routes = frozenset(self.config.streaming_routes)

        async def render_page(request: Request) -> AnyResponse:
            streaming = page.streaming
            if streaming is None:
                relative = request.path[len(prefix) :] if prefix else request.path
                streaming = (relative.rstrip("/") or "/") in streaming_routes
            return await dispatcher.dispatch(request, loader=page.loader, streaming=streaming)

        return render_page

    def _check_open(self) -> None:
        if self._compiled is not None:
            msg = (
                "The app is already compiled and serving; register pages, "
                "middleware, error handlers and hooks before the first request."
            )
            raise RuntimeError(msg)
