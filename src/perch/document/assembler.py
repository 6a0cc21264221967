"""Synchronous document assembly.

A pure function of the render result and the startup-built shell: no
I/O, byte-identical output for identical input.
"""

from collections.abc import Sequence

from perch.document.hydration import DEFAULT_GLOBAL, inject
from perch.document.shell import DocumentShell
from perch.render.engine import RenderResult


def assemble(
    shell: DocumentShell,
    result: RenderResult,
    *,
    module_scripts: Sequence[str] = (),
    global_name: str = DEFAULT_GLOBAL,
) -> str:
    """Return the complete HTML document for a finished render.

    Raises:
        SerializationError: ``result.initial_data`` is not JSON-serializable.
        TypeError: ``result.markup`` is a stream, not a string.
    """
    markup = result.markup
    if isinstance(markup, bytes):
        markup = markup.decode("utf-8")
    if not isinstance(markup, str):
        msg = f"Synchronous assembly needs string markup, got {type(markup).__name__}"
        raise TypeError(msg)

    data_script = inject(result.initial_data, global_name=global_name)
    return shell.head(result.title) + markup + shell.tail(data_script, module_scripts)
