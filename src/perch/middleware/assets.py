"""Serving the client build.

Hashed bundles are served straight from the build directory under the
public path. A URL that names no regular file there falls through to
the page routes, so ``/`` is always rendered, never read from
``index.html`` on disk.
"""

import mimetypes
from pathlib import Path

from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import AnyResponse, Next

IMMUTABLE = "public, max-age=31536000, immutable"


class StaticAssets:
    """Middleware serving files from a build directory.

    The URL is resolved inside *directory* with symlinks followed, and
    anything that lands outside it is a 403. Files named in *exclude*
    (the manifest and ``index.html``) are never served, however the URL
    spells them.

    Usage::

        app.add_middleware(StaticAssets("build/app", "/assets/"))
    """

    __slots__ = ("_cache_control", "_excluded", "_mount", "_root")

    def __init__(
        self,
        directory: str | Path,
        prefix: str = "/",
        *,
        exclude: tuple[str, ...] = (),
        cache_control: str = IMMUTABLE,
    ) -> None:
        self._root = Path(directory).resolve()
        self._excluded = frozenset((self._root / name).resolve() for name in exclude)
        self._mount = prefix.strip("/")
        self._cache_control = cache_control

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        target = self._locate(request.path) if request.method in ("GET", "HEAD") else None
        if target is None:
            return await next(request)
        if not target.is_relative_to(self._root):
            return Response(body="Forbidden", status=403)
        if target in self._excluded or not target.is_file():
            return await next(request)

        content_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
        return Response(
            body=target.read_bytes(),
            content_type=content_type,
            headers=(("Cache-Control", self._cache_control),),
        )

    def _locate(self, path: str) -> Path | None:
        """Resolved file path for *path*, or None if it is outside the mount."""
        relative = path.lstrip("/")
        if self._mount:
            if not relative.startswith(self._mount + "/"):
                return None
            relative = relative[len(self._mount) + 1 :].lstrip("/")
        if not relative:
            return None
        return (self._root / relative).resolve()
