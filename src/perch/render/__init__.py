"""Render engine interface and the kida-backed reference engine."""

from perch.render.engine import RenderEngine, RenderResult

__all__ = ["RenderEngine", "RenderResult"]
