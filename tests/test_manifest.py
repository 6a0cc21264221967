"""Tests for perch.assets.manifest — loading, lookup, and inlining."""

import json
from pathlib import Path

import pytest

from perch.assets.manifest import Manifest, load_manifest
from perch.errors import StartupFatalError


def _write(path: Path, content: object) -> Path:
    path.write_text(json.dumps(content), encoding="utf-8")
    return path


class TestManifest:
    def test_mapping_interface(self) -> None:
        manifest = Manifest({"app.js": "app.1.js", "runtime.js": "runtime.2.js"})

        assert manifest["app.js"] == "app.1.js"
        assert len(manifest) == 2
        assert set(manifest) == {"app.js", "runtime.js"}
        assert manifest.get("missing.js") is None

    def test_resolve_missing_names_entry(self) -> None:
        manifest = Manifest({"app.js": "app.1.js"})
        with pytest.raises(KeyError, match="Widget.js"):
            manifest.resolve("Widget.js")

    def test_flat_styles_are_css_values_in_order(self) -> None:
        manifest = Manifest(
            {"a.css": "a.1.css", "app.js": "app.1.js", "b.css": "b.2.css"}
        )
        assert manifest.grouped_view().styles == ("a.1.css", "b.2.css")

    def test_explicit_styles(self) -> None:
        manifest = Manifest({"app.js": "app.1.js"}, styles=("main.css",))
        grouped = manifest.grouped_view()
        assert grouped.styles == ("main.css",)
        assert grouped.entries["app.js"] == "app.1.js"

    def test_entries_are_read_only(self) -> None:
        manifest = Manifest({"app.js": "app.1.js"})
        with pytest.raises(TypeError):
            manifest.grouped_view().entries["app.js"] = "x"  # type: ignore[index]

    def test_inline_source(self, manifest: Manifest) -> None:
        assert manifest.inline_source("runtime.js") == "window.webpackJsonp=[];"

    def test_inline_source_unreadable_is_fatal(self, tmp_path: Path) -> None:
        manifest = Manifest({"runtime.js": "gone.js"}, root=tmp_path)
        with pytest.raises(StartupFatalError, match="runtime.js"):
            manifest.inline_source("runtime.js")

    def test_inline_source_without_root_is_fatal(self) -> None:
        with pytest.raises(StartupFatalError):
            Manifest({"runtime.js": "r.js"}).inline_source("runtime.js")


class TestLoadManifest:
    def test_flat_layout(self, build_dir: Path) -> None:
        manifest = load_manifest(build_dir / "manifest.json")
        assert manifest.resolve("app.js") == "app.3c4d.js"
        assert manifest.root == build_dir
        assert manifest.grouped_view().styles == ("app.5e6f.css",)

    def test_grouped_layout(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path / "manifest.json",
            {"entries": {"app.js": "app.1.js"}, "styles": ["vendor.css", "app.css"]},
        )
        manifest = load_manifest(path)
        assert manifest.grouped_view().styles == ("vendor.css", "app.css")
        assert manifest["app.js"] == "app.1.js"

    def test_missing_file_is_fatal(self, tmp_path: Path) -> None:
        with pytest.raises(StartupFatalError, match="not found"):
            load_manifest(tmp_path / "manifest.json")

    def test_invalid_json_is_fatal(self, tmp_path: Path) -> None:
        path = tmp_path / "manifest.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StartupFatalError, match="unreadable"):
            load_manifest(path)

    @pytest.mark.parametrize(
        "content",
        [[1, 2], {"app.js": 3}, {"entries": ["app.js"]}, {"entries": {}, "styles": "a.css"}],
    )
    def test_wrong_shape_is_fatal(self, tmp_path: Path, content: object) -> None:
        with pytest.raises(StartupFatalError):
            load_manifest(_write(tmp_path / "manifest.json", content))

    def test_required_entries(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "manifest.json", {"app.js": "app.1.js"})
        with pytest.raises(StartupFatalError, match="runtime.js"):
            load_manifest(path, require=("runtime.js", "app.js"))
