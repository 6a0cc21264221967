"""Tests for perch.middleware.assets — build output serving."""

from pathlib import Path

import pytest

from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.assets import StaticAssets


def _request(path: str, method: str = "GET") -> Request:
    return Request.from_scope({"type": "http", "method": method, "path": path})


async def _fallthrough(request: Request) -> Response:
    return Response("page")


@pytest.fixture
def assets(build_dir: Path) -> StaticAssets:
    return StaticAssets(build_dir, "/", exclude=("index.html", "manifest.json"))


class TestStaticAssets:
    async def test_serves_file(self, assets: StaticAssets) -> None:
        response = await assets(_request("/app.5e6f.css"), _fallthrough)
        assert response.status == 200
        assert response.content_type == "text/css"
        assert response.body == b"body{margin:0}"
        assert response.header("Cache-Control") == "public, max-age=31536000, immutable"

    async def test_unknown_file_falls_through(self, assets: StaticAssets) -> None:
        response = await assets(_request("/github"), _fallthrough)
        assert isinstance(response, Response)
        assert response.text == "page"

    @pytest.mark.parametrize(
        "path",
        [
            "/",
            "/index.html",
            "/manifest.json",
            "/manifest.json/",
            "/x/../manifest.json",
            "/./index.html",
        ],
    )
    async def test_root_and_excluded_fall_through(self, assets: StaticAssets, path: str) -> None:
        response = await assets(_request(path), _fallthrough)
        assert isinstance(response, Response)
        assert response.text == "page"

    async def test_directories_fall_through(self, build_dir: Path, assets: StaticAssets) -> None:
        (build_dir / "static").mkdir()
        response = await assets(_request("/static"), _fallthrough)
        assert isinstance(response, Response)
        assert response.text == "page"

    async def test_non_get_falls_through(self, assets: StaticAssets) -> None:
        response = await assets(_request("/app.3c4d.js", "POST"), _fallthrough)
        assert isinstance(response, Response)
        assert response.text == "page"

    async def test_traversal_is_forbidden(self, tmp_path: Path, assets: StaticAssets) -> None:
        (tmp_path / "secret.txt").write_text("secret")
        response = await assets(_request("/../secret.txt"), _fallthrough)
        assert isinstance(response, Response)
        assert response.status == 403

    async def test_prefix(self, build_dir: Path) -> None:
        assets = StaticAssets(build_dir, "/static/")
        served = await assets(_request("/static/app.3c4d.js"), _fallthrough)
        outside = await assets(_request("/app.3c4d.js"), _fallthrough)

        assert isinstance(served, Response)
        assert served.body == b"console.log('app');"
        assert isinstance(outside, Response)
        assert outside.text == "page"
