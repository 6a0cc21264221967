"""Page routes and match results."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Route:
    """A page: a path pattern and the handler that renders it.

    Pages are documents, served for GET and HEAD only, so a route
    carries no method set of its own.
    """

    path: str
    handler: Callable[..., Any]
    name: str | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """The page a request path resolved to, with captured segments."""

    route: Route
    path_params: dict[str, str]
