"""Build manifest loading and lookup.

The manifest maps logical entry names (``"runtime.js"``, ``"app.js"``,
``"Widget.js"``) to hashed asset paths relative to the build directory.
It is read once at startup and never mutated; any number of in-flight
requests may read it concurrently.

Two file layouts are accepted::

    {"runtime.js": "runtime.1a2b.js", "app.js": "app.3c4d.js", "app.css": "app.5e6f.css"}

    {"entries": {"runtime.js": "...", "app.js": "..."}, "styles": ["app.5e6f.css"]}

In the flat layout the style list is every ``.css`` path, in file order.
"""

import json
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from perch.errors import StartupFatalError

logger = logging.getLogger("perch.assets")


@dataclass(frozen=True, slots=True)
class GroupedManifest:
    """Grouped view: ordered style paths plus the raw entry mapping."""

    styles: tuple[str, ...]
    entries: Mapping[str, str]


class Manifest(Mapping[str, str]):
    """Immutable entry-name -> asset-path mapping rooted at a build directory."""

    __slots__ = ("_entries", "_root", "_styles")

    def __init__(
        self,
        entries: Mapping[str, str],
        *,
        styles: tuple[str, ...] | None = None,
        root: Path | None = None,
    ) -> None:
        self._entries = MappingProxyType(dict(entries))
        if styles is None:
            styles = tuple(p for p in self._entries.values() if p.endswith(".css"))
        self._styles = styles
        self._root = root

    def __getitem__(self, name: str) -> str:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Manifest({dict(self._entries)!r}, root={self._root!r})"

    @property
    def root(self) -> Path | None:
        return self._root

    def resolve(self, name: str) -> str:
        """Return the asset path for entry *name*.

        Raises ``KeyError`` naming the missing entry and the known ones.
        """
        try:
            return self._entries[name]
        except KeyError:
            known = ", ".join(sorted(self._entries)) or "(none)"
            msg = f"Manifest has no entry {name!r}. Known entries: {known}"
            raise KeyError(msg) from None

    def grouped_view(self) -> GroupedManifest:
        return GroupedManifest(styles=self._styles, entries=self._entries)

    def inline_source(self, name: str) -> str:
        """Read the asset behind entry *name* for inline embedding.

        Only called during startup; the result is cached for the process
        lifetime, so any failure here is fatal.
        """
        if self._root is None:
            msg = f"Cannot inline {name!r}: manifest has no build directory."
            raise StartupFatalError(msg)
        try:
            path = self._root / self.resolve(name)
            return path.read_text(encoding="utf-8")
        except (KeyError, OSError, UnicodeDecodeError) as exc:
            msg = f"Cannot inline manifest entry {name!r}: {exc}"
            raise StartupFatalError(msg) from exc


def load_manifest(path: str | Path, *, require: tuple[str, ...] = ()) -> Manifest:
    """Load and validate a manifest file.

    Args:
        path: The manifest JSON file. Its directory becomes the asset root.
        require: Entry names that must be present.

    Raises:
        StartupFatalError: The file is missing, unreadable, not the
            expected JSON shape, or lacks a required entry.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        msg = f"Manifest not found at {path}. Build the client bundle first."
        raise StartupFatalError(msg) from exc
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        msg = f"Manifest at {path} is unreadable: {exc}"
        raise StartupFatalError(msg) from exc

    if not isinstance(raw, dict):
        msg = f"Manifest at {path} must be a JSON object, got {type(raw).__name__}"
        raise StartupFatalError(msg)

    styles: tuple[str, ...] | None = None
    if "entries" in raw:
        entries = raw["entries"]
        raw_styles = raw.get("styles")
        if raw_styles is not None:
            if not isinstance(raw_styles, list) or not all(isinstance(s, str) for s in raw_styles):
                msg = f"Manifest at {path}: 'styles' must be a list of strings"
                raise StartupFatalError(msg)
            styles = tuple(raw_styles)
    else:
        entries = raw

    if not isinstance(entries, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in entries.items()
    ):
        msg = f"Manifest at {path}: entries must map strings to strings"
        raise StartupFatalError(msg)

    missing = [name for name in require if name not in entries]
    if missing:
        msg = f"Manifest at {path} is missing required entries: {', '.join(missing)}"
        raise StartupFatalError(msg)

    manifest = Manifest(entries, styles=styles, root=path.parent)
    logger.debug("loaded manifest %s (%d entries)", path, len(manifest))
    return manifest
