"""Initial-data injection for client hydration.

The same two functions feed the synchronous and the streaming
assemblers, so the hydration payload has one shape whatever the mode.
"""

import json
from typing import Any

from perch.errors import SerializationError

DEFAULT_GLOBAL = "__INITIAL_DATA__"

# json.dumps with ensure_ascii escapes everything outside ASCII, lone
# surrogates and U+2028/U+2029 included. These three could still close
# the <script> element.
_SCRIPT_ESCAPES = str.maketrans({"<": "\\u003c", ">": "\\u003e", "&": "\\u0026"})


def serialize_initial_data(data: Any) -> str:
    """Encode *data* as script-safe JSON. ``None`` becomes ``{}``.

    Raises:
        SerializationError: *data* holds values JSON cannot represent
            (arbitrary objects, NaN/Infinity, non-string keys that
            cannot be coerced).
    """
    if data is None:
        data = {}
    try:
        payload = json.dumps(data, ensure_ascii=True, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        msg = f"Initial data is not JSON-serializable: {exc}"
        raise SerializationError(msg) from exc
    return payload.translate(_SCRIPT_ESCAPES)


def inject(data: Any, *, global_name: str = DEFAULT_GLOBAL) -> str:
    """Return a ``<script>`` assigning *data* to ``window.<global_name>``."""
    return script_for(serialize_initial_data(data), global_name=global_name)


def script_for(payload: str, *, global_name: str = DEFAULT_GLOBAL) -> str:
    """Wrap an already-serialized payload in the hydration script tag."""
    return f'<script type="text/javascript">window.{global_name} = {payload}</script>'
