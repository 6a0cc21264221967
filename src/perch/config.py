"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups. Built once at process start and shared by
reference with every request.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from perch.errors import ConfigurationError

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(dev_mode=True, build_dir="dist", port=3000)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    workers: int = 0  # 0 = auto-detect from CPU count
    log_level: str = "info"

    # Rendering mode
    ssr_enabled: bool = True
    hmr_enabled: bool = False  # SSR off + HMR on: no static document is read
    dev_mode: bool = False  # development build: runtime script is referenced, not inlined

    # Paths
    app_prefix: str = ""
    public_path: str = "/"
    build_dir: str | Path = "build/app"
    manifest_name: str = "manifest.json"
    index_name: str = "index.html"
    serve_assets: bool = True  # serve build output from this process when SSR is on

    # Manifest entry names
    runtime_entry: str = "runtime.js"
    app_entry: str = "app.js"

    # Document
    default_title: str = "React App"
    container_id: str = "app"
    lang: str = "en"
    hydration_global: str = "__INITIAL_DATA__"

    # Streaming
    streaming_routes: tuple[str, ...] = ("/github",)
    sink_high_water_mark: int = 16  # chunks queued on the sink before the source pauses
    tail_chunk_size: int = 16 * 1024
    render_timeout: float | None = None  # seconds; None = unbounded

    @property
    def route_prefix(self) -> str:
        """``app_prefix`` without a trailing slash (``""`` for the root)."""
        return normalize_tail_slash(self.app_prefix)

    @property
    def asset_prefix(self) -> str:
        """``public_path`` with exactly one trailing slash."""
        return normalize_tail_slash(self.public_path) + "/"

    @property
    def build_path(self) -> Path:
        return Path(self.build_dir)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Build a config from ``PERCH_*`` environment variables.

        Unset variables keep their defaults::

            PERCH_SSR=0 PERCH_BUILD_DIR=dist python -m myapp
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}

        for var, field_name in (
            ("PERCH_SSR", "ssr_enabled"),
            ("PERCH_HMR", "hmr_enabled"),
            ("PERCH_DEV", "dev_mode"),
            ("PERCH_DEBUG", "debug"),
            ("PERCH_SERVE_ASSETS", "serve_assets"),
        ):
            if var in env:
                kwargs[field_name] = _parse_bool(var, env[var])

        for var, field_name in (
            ("PERCH_APP_PREFIX", "app_prefix"),
            ("PERCH_PUBLIC_PATH", "public_path"),
            ("PERCH_BUILD_DIR", "build_dir"),
            ("PERCH_HOST", "host"),
            ("PERCH_LOG_LEVEL", "log_level"),
        ):
            if var in env:
                kwargs[field_name] = env[var]

        if "PERCH_PORT" in env:
            kwargs["port"] = _parse_number("PERCH_PORT", env["PERCH_PORT"], int)
        if env.get("PERCH_RENDER_TIMEOUT"):
            kwargs["render_timeout"] = _parse_number(
                "PERCH_RENDER_TIMEOUT", env["PERCH_RENDER_TIMEOUT"], float
            )
        if "PERCH_STREAMING_ROUTES" in env:
            kwargs["streaming_routes"] = tuple(
                p.strip() for p in env["PERCH_STREAMING_ROUTES"].split(",") if p.strip()
            )

        return cls(**kwargs)  # type: ignore[arg-type]


def normalize_tail_slash(path: str) -> str:
    """Strip trailing slashes: ``"/app/"`` -> ``"/app"``, ``"/"`` -> ``""``."""
    return path.rstrip("/")


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    msg = f"{name} must be a boolean (1/0, true/false, yes/no, on/off), got {value!r}"
    raise ConfigurationError(msg)


def _parse_number[T: (int, float)](name: str, value: str, kind: type[T]) -> T:
    try:
        return kind(value)
    except ValueError:
        msg = f"{name} must be a {kind.__name__}, got {value!r}"
        raise ConfigurationError(msg) from None
