"""Tests for perch.routing.router: page trie matching."""

import pytest

from perch.errors import ConfigurationError, MethodNotAllowed, NotFound
from perch.routing.route import Route
from perch.routing.router import Router, Segment, split_pattern


def _handler() -> str:
    return "ok"


def _router(*patterns: str | tuple[str, str]) -> Router:
    r = Router()
    for pattern in patterns:
        if isinstance(pattern, tuple):
            r.add(Route(pattern[0], _handler, name=pattern[1]))
        else:
            r.add(Route(pattern, _handler))
    r.compile()
    return r


class TestSplitPattern:
    def test_literal(self) -> None:
        assert split_pattern("/github") == [Segment("literal", "github")]

    def test_param(self) -> None:
        assert split_pattern("/users/{name}")[1] == Segment("param", "name")

    def test_rest(self) -> None:
        assert split_pattern("/app/{path:path}") == [
            Segment("literal", "app"),
            Segment("rest", "path"),
        ]

    def test_root(self) -> None:
        assert split_pattern("/") == []

    def test_rejects_angle_bracket_param(self) -> None:
        with pytest.raises(ConfigurationError, match=r"\{param\}"):
            split_pattern("/share/<slug>")

    def test_rejects_unknown_converter(self) -> None:
        with pytest.raises(ConfigurationError, match="int"):
            split_pattern("/users/{id:int}")

    def test_rest_must_be_last(self) -> None:
        with pytest.raises(ConfigurationError, match="last"):
            split_pattern("/{path:path}/edit")


class TestMatching:
    def test_root(self) -> None:
        match = _router("/").match("GET", "/")
        assert match.route.path == "/"
        assert match.path_params == {}

    def test_trailing_slash_ignored(self) -> None:
        assert _router("/github").match("GET", "/github/").route.path == "/github"

    def test_literal_beats_param_beats_rest(self) -> None:
        r = _router("/{path:path}", "/users/{id}", "/users/me")

        assert r.match("GET", "/users/me").route.path == "/users/me"
        assert r.match("GET", "/users/42").path_params == {"id": "42"}
        match = r.match("GET", "/users/42/posts")
        assert match.route.path == "/{path:path}"
        assert match.path_params == {"path": "users/42/posts"}

    def test_param_dead_end_falls_back_to_rest(self) -> None:
        r = _router("/{path:path}", "/users/{id}/profile")
        assert r.match("GET", "/users/42").path_params == {"path": "users/42"}

    def test_rest_does_not_match_root(self) -> None:
        with pytest.raises(NotFound):
            _router("/{path:path}").match("GET", "/")

    def test_first_registration_wins(self) -> None:
        r = _router(("/github", "page"), ("/github", "late"))
        assert r.match("GET", "/github").route.name == "page"

    def test_prefixed_catch_all(self) -> None:
        r = _router("/app", "/app/{path:path}")
        assert r.match("GET", "/app").route.path == "/app"
        assert r.match("GET", "/app/x/y").path_params == {"path": "x/y"}
        with pytest.raises(NotFound):
            r.match("GET", "/other")


class TestMethods:
    def test_head_is_routed(self) -> None:
        assert _router("/").match("HEAD", "/").route.path == "/"

    def test_other_methods_not_allowed(self) -> None:
        with pytest.raises(MethodNotAllowed) as exc_info:
            _router("/github").match("POST", "/github")

        assert exc_info.value.status == 405
        assert dict(exc_info.value.headers)["Allow"] == "GET, HEAD"

    def test_unknown_path_is_not_found_for_any_method(self) -> None:
        with pytest.raises(NotFound):
            _router("/github").match("POST", "/elsewhere")


class TestCompile:
    def test_add_after_compile_raises(self) -> None:
        r = _router("/")
        with pytest.raises(RuntimeError, match="after compilation"):
            r.add(Route("/late", _handler))
