"""Preload specification normalizer.

Turns the loose shapes callers write (a name, a list of names, a mapping
of name to nested spec or custom query, arbitrarily mixed and nested)
into one canonical tree with a single node per association and level.

Accepted entries inside a list: a name, a mapping, a nested list, or a
``(name, value)`` pair. A value is a nested spec or a ``Query``; a query
is terminal.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from row_graph.core.exceptions import InvalidPreloadError, PreloadConflictError
from row_graph.query.query import Query


class Shape(Enum):
    BARE = "bare"
    NESTED = "nested"
    QUERY = "query"


@dataclass(frozen=True)
class PreloadNode:
    """One association to preload, with its custom query or nested nodes."""

    name: str
    query: Query | None = None
    nested: dict[str, PreloadNode] = field(default_factory=dict, hash=False)
    explicit: bool = False  # nesting was written out, even if empty

    @property
    def shape(self) -> Shape:
        if self.query is not None:
            return Shape.QUERY
        if self.explicit:
            return Shape.NESTED
        return Shape.BARE

    def describe(self) -> Any:
        if self.query is not None:
            return self.query.describe()
        if not self.nested:
            return [] if self.explicit else self.name
        return {name: node.describe() for name, node in self.nested.items()}


_BARE = object()


def normalize(
    spec: Any,
    path: tuple[str, ...] = (),
    original: Any = None,
) -> dict[str, PreloadNode]:
    """Normalize *spec* into a mapping of association name to PreloadNode.

    Raises:
        InvalidPreloadError: If *spec* (or a nested part) has an unsupported shape.
        PreloadConflictError: If one name is given twice with incompatible values.
    """
    if original is None:
        original = spec
    if not isinstance(spec, (str, list, tuple, Mapping)):
        raise InvalidPreloadError(spec, original)

    result: dict[str, PreloadNode] = {}
    for name, value in _entries(spec, original):
        node = _node(name, value, path, original)
        current = result.get(name)
        merged = node if current is None else merge_nodes(current, node, path)
        result = {**result, name: merged}
    return result


def _entries(spec: Any, original: Any) -> list[tuple[str, Any]]:
    if isinstance(spec, str):
        return [(spec, _BARE)]
    if isinstance(spec, Mapping):
        items = list(spec.items())
        for key, _ in items:
            if not isinstance(key, str):
                raise InvalidPreloadError(key, original)
        return items

    entries: list[tuple[str, Any]] = []
    for item in spec:
        if isinstance(item, str):
            entries.append((item, _BARE))
        elif isinstance(item, tuple) and len(item) == 2 and isinstance(item[0], str):
            entries.append(item)
        elif isinstance(item, (list, Mapping)):
            entries.extend(_entries(item, original))
        else:
            raise InvalidPreloadError(item, original)
    return entries


def _node(name: str, value: Any, path: tuple[str, ...], original: Any) -> PreloadNode:
    if value is _BARE:
        return PreloadNode(name)
    if isinstance(value, Query):
        return PreloadNode(name, query=value)
    if isinstance(value, (str, list, tuple, Mapping)):
        nested = normalize(value, path + (name,), original)
        return PreloadNode(name, nested=nested, explicit=True)
    raise InvalidPreloadError(value, original)


def merge_nodes(left: PreloadNode, right: PreloadNode, path: tuple[str, ...] = ()) -> PreloadNode:
    """Merge two nodes for the same association at the same level.

    A bare name adds nothing to a richer node; nested specs are unioned;
    two equal queries are kept once. Anything else is a conflict.
    """
    if right.shape is Shape.BARE:
        return left
    if left.shape is Shape.BARE:
        return right

    if left.shape is Shape.NESTED and right.shape is Shape.NESTED:
        nested = dict(left.nested)
        for name, node in right.nested.items():
            current = nested.get(name)
            nested[name] = node if current is None else merge_nodes(
                current, node, path + (left.name,)
            )
        return PreloadNode(left.name, nested=nested, explicit=True)

    if left.shape is Shape.QUERY and right.shape is Shape.QUERY and left.query == right.query:
        return left

    raise PreloadConflictError(".".join(path + (left.name,)), left.describe(), right.describe())
