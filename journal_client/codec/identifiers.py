"""Conversion between wire identifiers and the in-memory :class:`Id` type.

The remote API serializes every 64-bit identifier as a decimal string inside
JSON bodies and path segments.

- :func:`encode` turns every :class:`Id` of an arbitrary payload into its
  decimal string and leaves everything else untouched.
- :func:`decode` is selective: only the values of keys named in the
  per-endpoint hint are converted back, because a numeric-looking string is
  not necessarily an identifier.

Both walk the payload with an explicit stack, so nesting depth is bounded by
memory only, and both build new containers instead of mutating the input.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Collection, List, Tuple
from urllib.parse import quote

from journal_client.core.exceptions import IdentifierError
from journal_client.core.types import Id

_CONTAINERS = (Mapping, list, tuple, set, frozenset)


class _Frame:
    """One container being rebuilt during an iterative walk."""

    __slots__ = ("source", "items", "children", "key", "id_context")

    def __init__(self, source: Any, key: Any, id_context: bool) -> None:
        self.source = source
        self.key = key
        self.id_context = id_context
        if isinstance(source, Mapping):
            self.items = iter(source.items())
        else:
            self.items = iter(enumerate(source))
        self.children: List[Tuple[Any, Any]] = []

    def build(self) -> Any:
        if isinstance(self.source, Mapping):
            return dict(self.children)
        values = [value for _, value in self.children]
        if isinstance(self.source, list):
            return values
        if isinstance(self.source, tuple):
            return tuple(values)
        if isinstance(self.source, frozenset):
            return frozenset(values)
        return set(values)


def _walk(
    value: Any,
    leaf: Callable[[Any, bool], Any],
    id_fields: Collection[str] = (),
) -> Any:
    if not isinstance(value, _CONTAINERS):
        return leaf(value, False)

    stack: List[_Frame] = [_Frame(value, None, False)]
    while True:
        frame = stack[-1]
        try:
            key, child = next(frame.items)
        except StopIteration:
            stack.pop()
            built = frame.build()
            if not stack:
                return built
            stack[-1].children.append((frame.key, built))
            continue

        if isinstance(frame.source, Mapping):
            child_context = key in id_fields
        else:
            child_context = frame.id_context

        if isinstance(child, _CONTAINERS):
            stack.append(_Frame(child, key, child_context))
        else:
            frame.children.append((key, leaf(child, child_context)))


def _encode_leaf(value: Any, _id_context: bool) -> Any:
    if isinstance(value, Id):
        return str(value)
    return value


def _decode_leaf(value: Any, id_context: bool) -> Any:
    if id_context and value is not None:
        return Id.parse(value)
    return value


def encode(value: Any) -> Any:
    """Return a copy of ``value`` with every :class:`Id` as a decimal string.

    Plain ``int`` values are not identifiers and pass through unchanged, as
    do floats, booleans, strings and ``None``.
    """
    return _walk(value, _encode_leaf)


def decode(value: Any, id_fields: Collection[str]) -> Any:
    """Return a copy of ``value`` with identifier fields parsed into :class:`Id`.

    ``id_fields`` names the mapping keys that carry identifiers at any depth.
    A sequence stored under such a key is decoded element-wise.
    """
    return _walk(value, _decode_leaf, frozenset(id_fields))


def encode_path_segment(value: Id) -> str:
    """Render an identifier for use inside a request path."""
    if not isinstance(value, Id):
        raise IdentifierError(
            f"Path identifiers must be Id instances, got {type(value).__name__}"
        )
    return str(value)


def escape_path_segment(text: str) -> str:
    """Percent-escape free text so it stays a single path segment."""
    return quote(text, safe="")


__all__ = [
    "Id",
    "encode",
    "decode",
    "encode_path_segment",
    "escape_path_segment",
]
