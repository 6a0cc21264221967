"""Page router: a segment trie with ``{name}`` and ``{name:path}`` holes.

At each depth a literal segment is tried first, then a ``{name}`` hole
(exactly one segment), then a ``{name:path}`` tail that takes whatever
is left. That ordering lets registered pages sit in front of the
catch-all that renders every other URL.
"""

from dataclasses import dataclass, field

from perch.errors import ConfigurationError, MethodNotAllowed, NotFound
from perch.routing.route import Route, RouteMatch

PAGE_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True, slots=True)
class Segment:
    """One piece of a route pattern.

    ``kind`` is ``"literal"``, ``"param"`` or ``"rest"``; ``text`` is the
    literal value or the parameter name.
    """

    kind: str
    text: str


def split_pattern(pattern: str) -> list[Segment]:
    """Parse *pattern* into segments.

    Examples::

        "/github"          -> [Segment("literal", "github")]
        "/users/{name}"    -> [Segment("literal", "users"), Segment("param", "name")]
        "/{path:path}"     -> [Segment("rest", "path")]
    """
    segments: list[Segment] = []
    for part in pattern.split("/"):
        if not part:
            continue
        if part[0] == "<" and part[-1] == ">":
            msg = f"Route {pattern!r} uses <param> syntax; perch expects {{param}}."
            raise ConfigurationError(msg)
        if part[0] != "{" or part[-1] != "}":
            segments.append(Segment("literal", part))
            continue
        name, _, kind = part[1:-1].partition(":")
        if kind not in ("", "path"):
            msg = f"Route {pattern!r}: {part} is not supported, use {{{name}}} or {{{name}:path}}"
            raise ConfigurationError(msg)
        segments.append(Segment("rest" if kind else "param", name))

    if any(seg.kind == "rest" for seg in segments[:-1]):
        msg = f"Route {pattern!r}: a {{name:path}} segment must be the last one"
        raise ConfigurationError(msg)
    return segments


@dataclass(slots=True)
class _Node:
    literals: dict[str, "_Node"] = field(default_factory=dict)
    param: tuple[str, "_Node"] | None = None
    rest: tuple[str, Route] | None = None
    route: Route | None = None


class Router:
    """Maps request paths to pages.

    Usage::

        router = Router()
        router.add(Route("/github", github_page))
        router.add(Route("/{path:path}", catch_all))
        router.compile()
        router.match("GET", "/github")
    """

    __slots__ = ("_compiled", "_root")

    def __init__(self) -> None:
        self._root = _Node()
        self._compiled = False

    def add(self, route: Route) -> None:
        """Register *route*. The first route for a given pattern wins."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        node = self._root
        for seg in split_pattern(route.path):
            if seg.kind == "literal":
                node = node.literals.setdefault(seg.text, _Node())
            elif seg.kind == "param":
                if node.param is None:
                    node.param = (seg.text, _Node())
                node = node.param[1]
            else:
                if node.rest is None:
                    node.rest = (seg.text, route)
                return
        if node.route is None:
            node.route = route

    def compile(self) -> None:
        """Freeze the route table."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Resolve *path* to a page.

        Raises ``NotFound`` when no pattern covers the path, and
        ``MethodNotAllowed`` for anything but GET and HEAD.
        """
        found = _find(self._root, [part for part in path.split("/") if part], {})
        if found is None:
            raise NotFound(f"No page for {path!r}")
        if method not in PAGE_METHODS:
            raise MethodNotAllowed(PAGE_METHODS)
        route, params = found
        return RouteMatch(route=route, path_params=params)


def _find(
    node: _Node,
    parts: list[str],
    params: dict[str, str],
) -> tuple[Route, dict[str, str]] | None:
    if not parts:
        return (node.route, params) if node.route is not None else None

    head, tail = parts[0], parts[1:]
    child = node.literals.get(head)
    if child is not None:
        found = _find(child, tail, params)
        if found is not None:
            return found

    if node.param is not None:
        name, child = node.param
        found = _find(child, tail, {**params, name: head})
        if found is not None:
            return found

    if node.rest is not None:
        name, route = node.rest
        return route, {**params, name: "/".join(parts)}
    return None
