"""Tests for perch.document.shell — head/tail fragments built at startup."""

from pathlib import Path

import pytest

from perch.assets.manifest import Manifest
from perch.config import AppConfig
from perch.document.shell import DocumentShell, build_shell, script_inline, script_src, style_link
from perch.errors import StartupFatalError


class TestTags:
    def test_style_link(self) -> None:
        assert style_link("/app.css") == '<link href="/app.css" rel="stylesheet">\n'

    def test_script_src_escapes_attribute(self) -> None:
        assert script_src('/a".js') == '<script type="text/javascript" src="/a&quot;.js"></script>'

    def test_script_inline_cannot_close_element_early(self) -> None:
        tag = script_inline("var s = '</script>';")
        assert tag.count("</script") == 1
        assert "<\\/script>" in tag


class TestDocumentShell:
    def test_head_ends_with_open_container(self, shell: DocumentShell) -> None:
        head = shell.head()
        assert head.startswith("<!DOCTYPE html>\n")
        assert head.endswith('<div id="app">')
        assert "<title>React App</title>" in head
        assert '<link href="/app.5e6f.css" rel="stylesheet">' in head

    def test_head_title_is_escaped(self, shell: DocumentShell) -> None:
        assert "<title>a &lt;b&gt;</title>" in shell.head("a <b>")

    def test_tail_order(self, shell: DocumentShell) -> None:
        tail = shell.tail("<script>DATA</script>", ['<script src="/m.js"></script>'])
        assert tail.startswith("</div>\n")
        assert tail.endswith("</body>\n</html>\n")
        data = tail.index("DATA")
        runtime = tail.index("webpackJsonp")
        module = tail.index("/m.js")
        app = tail.index("/app.3c4d.js")
        assert data < runtime < module < app


class TestBuildShell:
    def test_production_inlines_runtime(self, shell: DocumentShell) -> None:
        assert shell.runtime_script == (
            '<script type="text/javascript">window.webpackJsonp=[];</script>'
        )
        assert shell.app_script == (
            '<script type="text/javascript" src="/app.3c4d.js"></script>'
        )

    def test_dev_mode_references_runtime(self, build_dir: Path, manifest: Manifest) -> None:
        shell = build_shell(AppConfig(build_dir=build_dir, dev_mode=True), manifest)
        assert shell.runtime_script == (
            '<script type="text/javascript" src="/runtime.1a2b.js"></script>'
        )

    def test_public_path_prefixes_assets(self, build_dir: Path, manifest: Manifest) -> None:
        shell = build_shell(AppConfig(build_dir=build_dir, public_path="/static"), manifest)
        assert 'href="/static/app.5e6f.css"' in shell.style_links
        assert 'src="/static/app.3c4d.js"' in shell.app_script

    def test_missing_runtime_file_is_fatal(self, build_dir: Path, manifest: Manifest) -> None:
        (build_dir / "runtime.1a2b.js").unlink()
        with pytest.raises(StartupFatalError):
            build_shell(AppConfig(build_dir=build_dir), manifest)

    def test_config_document_fields(self, build_dir: Path, manifest: Manifest) -> None:
        cfg = AppConfig(build_dir=build_dir, lang="de", container_id="root", default_title="Hi")
        head = build_shell(cfg, manifest).head()
        assert '<html lang="de">' in head
        assert head.endswith('<div id="root">')
        assert "<title>Hi</title>" in head
