"""Immutable pipeline context

A Context maps reserved keys (``@input``, ``@options``, ``@<outputKey>``) to
values. It is never mutated: ``extend`` returns a new Context, so a child scope
cannot change what its parent sees.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterator, Mapping

INPUT_KEY = "@input"
OPTIONS_KEY = "@options"


def output_key_var(output_key: str) -> str:
    """Context key for an output key, e.g. ``data`` -> ``@data``"""
    return output_key if output_key.startswith("@") else f"@{output_key}"


class Context(Mapping[str, Any]):
    """Read-only, copy-on-write mapping."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None, /, **kwargs: Any):
        values = dict(data or {})
        values.update(kwargs)
        self._data = MappingProxyType(values)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Context({dict(self._data)!r})"

    def extend(self, values: Mapping[str, Any] | None = None, /, **kwargs: Any) -> "Context":
        """Return a new Context with ``values`` layered over this one."""
        merged = dict(self._data)
        merged.update(values or {})
        merged.update(kwargs)
        return Context(merged)

    def bind(self, output_key: str, value: Any) -> "Context":
        """Return a new Context with ``@<output_key>`` set to ``value``."""
        return self.extend({output_key_var(output_key): value})

    def to_dict(self) -> dict[str, Any]:
        """Shallow copy as a plain dict"""
        return dict(self._data)


def as_context(value: Mapping[str, Any] | None) -> Context:
    if isinstance(value, Context):
        return value
    return Context(value)
