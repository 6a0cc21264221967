"""Document shell — the static HTML around rendered markup.

The shell is split at the container element so the streaming assembler
can flush the head before any markup exists::

    head(title)                      markup            tail(data_script, scripts)
    <!DOCTYPE html>...<div id="app"> <div>...</div>    </div><script>window.__INITIAL_DATA__ ...

Everything that does not depend on the request (style links, the
runtime script, the app script tag) is computed once at startup.
"""

import html
from collections.abc import Sequence
from dataclasses import dataclass

from perch.assets.manifest import Manifest
from perch.config import AppConfig


@dataclass(frozen=True, slots=True)
class DocumentShell:
    """Precomputed head/tail fragments. Immutable, shared by all requests."""

    lang: str
    container_id: str
    default_title: str
    style_links: str
    runtime_script: str
    app_script: str

    def head(self, title: str | None = None) -> str:
        """Doctype through the opening container tag."""
        return (
            "<!DOCTYPE html>\n"
            f'<html lang="{html.escape(self.lang)}">\n'
            "<head>\n"
            '<meta charset="UTF-8">\n'
            '<meta name="viewport" content="width=device-width, initial-scale=1, '
            'shrink-to-fit=no, user-scalable=no">\n'
            f"<title>{html.escape(title or self.default_title)}</title>\n"
            f"{self.style_links}"
            "</head>\n"
            "<body>\n"
            f'<div id="{html.escape(self.container_id)}">'
        )

    def tail(self, data_script: str, module_scripts: Sequence[str] = ()) -> str:
        """Closing container tag through ``</html>``.

        Order: hydration data, runtime, per-route module scripts, app.
        """
        return (
            "</div>\n"
            f"{data_script}\n"
            f"{self.runtime_script}\n"
            f"{''.join(module_scripts)}"
            f"{self.app_script}\n"
            "</body>\n"
            "</html>\n"
        )


def style_link(href: str) -> str:
    return f'<link href="{html.escape(href)}" rel="stylesheet">\n'


def script_src(src: str) -> str:
    return f'<script type="text/javascript" src="{html.escape(src)}"></script>'


def script_inline(source: str) -> str:
    # "</script" inside the source would end the element early.
    escaped = source.replace("</script", "<\\/script")
    return f'<script type="text/javascript">{escaped}</script>'


def build_shell(config: AppConfig, manifest: Manifest) -> DocumentShell:
    """Build the shell from config and manifest.

    Development builds reference the runtime by URL; production builds
    inline its source to save a round trip on first paint. Reading that
    source is a startup step and raises ``StartupFatalError`` on failure.
    """
    prefix = config.asset_prefix
    grouped = manifest.grouped_view()

    if config.dev_mode:
        runtime = script_src(prefix + manifest.resolve(config.runtime_entry))
    else:
        runtime = script_inline(manifest.inline_source(config.runtime_entry))

    return DocumentShell(
        lang=config.lang,
        container_id=config.container_id,
        default_title=config.default_title,
        style_links="".join(style_link(prefix + path) for path in grouped.styles),
        runtime_script=runtime,
        app_script=script_src(prefix + manifest.resolve(config.app_entry)),
    )
