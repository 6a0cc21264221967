"""Middleware protocol and built-in middleware."""

from perch.middleware.assets import StaticAssets
from perch.middleware.no_cache import NoCacheState
from perch.middleware.protocol import AnyResponse, Middleware, Next

__all__ = ["AnyResponse", "Middleware", "Next", "NoCacheState", "StaticAssets"]
