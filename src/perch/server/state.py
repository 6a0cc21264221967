"""Process-wide render state, loaded once at startup.

``RenderState`` bundles everything requests read but never write: the
config, the manifest, the precomputed document shell, and the cached
static document. It is built by ``load_render_state()`` while the app
freezes and then passed by reference to the dispatcher.
"""

import logging
from dataclasses import dataclass

from perch.assets.manifest import Manifest, load_manifest
from perch.config import AppConfig
from perch.document.shell import DocumentShell, build_shell

logger = logging.getLogger("perch.server")


@dataclass(frozen=True, slots=True)
class RenderState:
    """Immutable startup state shared by all in-flight requests."""

    config: AppConfig
    manifest: Manifest | None = None
    shell: DocumentShell | None = None
    static_document: str = ""

    @property
    def ssr_enabled(self) -> bool:
        return self.config.ssr_enabled


def load_render_state(config: AppConfig) -> RenderState:
    """Load the state the configured rendering mode needs.

    - SSR on: manifest and shell are required; failures raise
      ``StartupFatalError``.
    - SSR off, HMR off: the built ``index.html`` is cached. If it cannot
      be read, a warning is logged and requests get an empty body.
    - SSR off, HMR on: the dev server owns the page; nothing is read.
    """
    build = config.build_path

    if config.ssr_enabled:
        manifest = load_manifest(
            build / config.manifest_name,
            require=(config.runtime_entry, config.app_entry),
        )
        shell = build_shell(config, manifest)
        logger.info(
            "SSR enabled (%s runtime), %d manifest entries",
            "external" if config.dev_mode else "inline",
            len(manifest),
        )
        return RenderState(config=config, manifest=manifest, shell=shell)

    if config.hmr_enabled:
        logger.info("SSR disabled, HMR enabled; static document not loaded")
        return RenderState(config=config)

    index = build / config.index_name
    try:
        static_document = index.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("failed to read %s (%s); serving empty documents", index, exc)
        static_document = ""
    return RenderState(config=config, static_document=static_document)
