"""Perch — server-side rendering host for single-page apps.

Assembles complete HTML documents around a render engine's markup:
synchronously, or streamed in phases so the browser can start on the
head before rendering is finished.

Basic usage::

    from perch import App, AppConfig
    from perch.enrichment import github_branches
    from perch.render.kida_engine import KidaRenderEngine

    app = App(
        AppConfig(build_dir="build/app"),
        engine=lambda state: KidaRenderEngine.from_directory("templates", state.manifest),
    )

    @app.page("/github")
    async def github(request):
        return {"github": await github_branches("jasonboy/wechat-jssdk")}

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "AnyResponse",
    "App",
    "AppConfig",
    "ConfigurationError",
    "HTTPError",
    "Middleware",
    "Next",
    "NotFound",
    "PerchError",
    "RenderEngine",
    "RenderResult",
    "Request",
    "Response",
    "SerializationError",
    "StartupFatalError",
    "StreamedDocument",
    "UpstreamFetchError",
    "g",
    "get_request",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "StreamedDocument"):
        from perch.http import response

        return getattr(response, name)

    if name in ("RenderEngine", "RenderResult"):
        from perch.render import engine

        return getattr(engine, name)

    if name in ("AnyResponse", "Middleware", "Next"):
        from perch.middleware import protocol

        return getattr(protocol, name)

    if name in (
        "ConfigurationError",
        "HTTPError",
        "NotFound",
        "PerchError",
        "SerializationError",
        "StartupFatalError",
        "UpstreamFetchError",
    ):
        from perch import errors

        return getattr(errors, name)

    if name in ("g", "get_request"):
        from perch import context

        return getattr(context, name)

    msg = f"module 'perch' has no attribute {name!r}"
    raise AttributeError(msg)
