"""Serve a live perch App with pounce.

Pounce's ``run()`` takes an import string (e.g., ``"myapp:app"``), but
perch hands over a live ``App`` object, so ``pounce.Server`` is used
directly with the ASGI callable.
"""


def run_server(
    app: object,
    host: str,
    port: int,
    *,
    workers: int = 1,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    """Start a pounce server for the given app.

    Args:
        app: ASGI callable (perch App instance).
        host: Bind host address.
        port: Bind port number.
        workers: Worker count (0 = auto-detect from CPU count).
        reload: Enable auto-reload on file changes.
        log_level: Pounce log level name.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=workers,
        reload=reload,
        log_level=log_level,
    )
    Server(config, app).run()
