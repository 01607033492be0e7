"""Property path helpers

A simple path is a dotted property path such as ``@input.user.name``. A part
ending in ``?`` is optional: traversing a missing value through it yields None
instead of an error.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Sequence

from brickrun.exceptions import BusinessError

SIMPLE_PATH_RE = re.compile(r"^@?[\w-]+\??(\.[\w-]+\??)*$")


def _strip_optional(part: str) -> tuple[str, bool]:
    if part.endswith("?"):
        return part[:-1], True
    return part, False


def is_simple_path(maybe_path: Any, ctxt: Mapping[str, Any]) -> bool:
    """True if ``maybe_path`` is a property path whose head is in ``ctxt``."""
    if not isinstance(maybe_path, str) or not SIMPLE_PATH_RE.match(maybe_path):
        return False
    head, _ = _strip_optional(maybe_path.split(".", 1)[0])
    return head in ctxt


def _get_part(value: Any, part: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(part)
    if isinstance(value, Sequence) and not isinstance(value, str):
        if part.isdigit() and int(part) < len(value):
            return value[int(part)]
        if part == "length":
            return len(value)
        return None
    return getattr(value, part, None) if not part.startswith("_") else None


def get_prop_by_path(obj: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path against ``obj``.

    Raises:
        BusinessError: If a non-optional part is read from a missing value.
    """
    value: Any = obj
    previous_optional = False
    for raw_part in path.strip().split("."):
        part, optional = _strip_optional(raw_part)
        if value is None:
            if previous_optional:
                return None
            raise BusinessError(f"Cannot read property '{part}' of null (path: {path})")
        value = _get_part(value, part)
        previous_optional = optional
    return value
