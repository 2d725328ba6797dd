"""Preload expander.

Resolves every name of a normalized preload tree against the registry,
producing an ordered list of entries the preloader executes. Through
associations are replaced by the chain of concrete preloads they walk,
followed by a marker entry that the preloader fills in from that chain.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from row_graph.association import through
from row_graph.core.exceptions import PreloadConflictError
from row_graph.mapping.descriptor import DirectAssociation, ThroughAssociation
from row_graph.preload.normalizer import PreloadNode, Shape
from row_graph.query.query import Query

if TYPE_CHECKING:
    from row_graph.core.registry import SchemaRegistry


@dataclass(frozen=True)
class AssocInfo:
    """Tag of a direct association entry: fetch rows keyed by ``join_key``."""

    descriptor: DirectAssociation
    join_key: str


@dataclass(frozen=True)
class ThroughInfo:
    """Tag of a through association entry: walk ``path`` over loaded steps."""

    descriptor: ThroughAssociation
    path: tuple[str, ...]


EntryInfo = Union[AssocInfo, ThroughInfo]


@dataclass(frozen=True)
class PreloadEntry:
    name: str
    info: EntryInfo
    query: Query | None = None
    nested: tuple[PreloadEntry, ...] = ()
    shape: Shape = Shape.BARE

    @property
    def is_through(self) -> bool:
        return isinstance(self.info, ThroughInfo)


def expand(
    registry: SchemaRegistry,
    owner_type: type,
    mapping: dict[str, PreloadNode],
    acc: tuple[PreloadEntry, ...] = (),
) -> tuple[PreloadEntry, ...]:
    """Expand *mapping* for *owner_type* onto the entries already in *acc*.

    Raises:
        UnknownAssociationError: If a name is not an association of the type.
        PreloadConflictError: If a name is requested with incompatible shapes.
    """
    entries = acc
    for node in mapping.values():
        entries = _expand_node(registry, owner_type, node, entries)
    return entries


def _position(entries: tuple[PreloadEntry, ...], name: str) -> int | None:
    for i, entry in enumerate(entries):
        if entry.name == name:
            return i
    return None


def _expand_node(
    registry: SchemaRegistry,
    owner_type: type,
    node: PreloadNode,
    entries: tuple[PreloadEntry, ...],
) -> tuple[PreloadEntry, ...]:
    assoc = registry.association(owner_type, node.name)
    if assoc.is_through:
        return _expand_through(registry, owner_type, assoc, node, entries)  # type: ignore[arg-type]

    nested = expand(registry, assoc.related, node.nested)  # type: ignore[union-attr]
    index = _position(entries, node.name)
    if index is None:
        entry = PreloadEntry(
            name=node.name,
            info=AssocInfo(assoc, assoc.related_key),  # type: ignore[arg-type, union-attr]
            query=node.query,
            nested=nested,
            shape=node.shape,
        )
        return entries + (entry,)

    existing = entries[index]
    _check_compatible(existing, node)
    merged = PreloadEntry(
        name=existing.name,
        info=existing.info,
        query=existing.query if existing.query is not None else node.query,
        nested=existing.nested + nested,
        shape=existing.shape if node.shape is Shape.BARE else node.shape,
    )
    return entries[:index] + (merged,) + entries[index + 1 :]


def _check_compatible(existing: PreloadEntry, node: PreloadNode) -> None:
    left, right = existing.shape, node.shape
    if Shape.BARE in (left, right) or (left is right is Shape.NESTED):
        return
    if left is right is Shape.QUERY and existing.query == node.query:
        return
    raise PreloadConflictError(
        existing.name,
        existing.query.describe() if existing.query is not None else [],
        node.describe(),
    )


def _expand_through(
    registry: SchemaRegistry,
    owner_type: type,
    assoc: ThroughAssociation,
    node: PreloadNode,
    entries: tuple[PreloadEntry, ...],
) -> tuple[PreloadEntry, ...]:
    # Validates the path: unknown steps, cycles and depth.
    through.expand_path(registry, assoc)

    # The caller's query and nested preloads attach to the terminal step.
    *steps, last = assoc.through
    chain = PreloadNode(last, query=node.query, nested=node.nested, explicit=node.explicit)
    # Intermediate steps stay bare so they merge with a caller's own
    # query or nesting for the same step.
    for step in reversed(steps):
        chain = PreloadNode(step, nested={chain.name: chain})
    entries = _expand_node(registry, owner_type, chain, entries)

    if _position(entries, node.name) is not None:
        return entries
    marker = PreloadEntry(name=node.name, info=ThroughInfo(assoc, assoc.through))
    return entries + (marker,)
