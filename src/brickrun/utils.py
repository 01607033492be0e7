"""Small value helpers shared by the runtime and bricks"""

from __future__ import annotations

from typing import Any, Mapping

TRUTHY_STRINGS = frozenset({"true", "t", "yes", "y", "on", "1"})


def boolean(value: Any) -> bool:
    """Coerce a rendered value to a boolean.

    Strings are true only for the usual affirmative spellings, so an
    unrendered template such as ``"{{ x }}"`` is false.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return False


def is_plain_object(value: Any) -> bool:
    return isinstance(value, Mapping)


def copy_plain(value: Any) -> Any:
    """Copy nested dicts and lists so a brick can't change the context it read from.

    Other values, including expressions and closure environments, are shared.
    """
    if isinstance(value, dict):
        return {k: copy_plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [copy_plain(v) for v in value]
    return value
