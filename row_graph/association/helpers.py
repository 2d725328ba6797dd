"""Entity-level association helpers: build a related entity, query an association."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from row_graph.association.resolver import filter_query
from row_graph.core.exceptions import ArgumentError
from row_graph.mapping.descriptor import BelongsTo
from row_graph.mapping.model import get_field, new_entity, same_type
from row_graph.query.query import Query

if TYPE_CHECKING:
    from row_graph.core.registry import SchemaRegistry


def build(
    registry: SchemaRegistry,
    owner: Any,
    association: str,
    attrs: dict[str, Any] | None = None,
) -> Any:
    """Build a new entity for *association* of *owner*.

    The related foreign key is stamped from the owner key, association
    defaults are applied, then *attrs* on top. A foreign key value in
    *attrs* is discarded.

    Raises:
        UnknownAssociationError: If the association does not exist.
        ArgumentError: For belongs-to and through associations.
    """
    owner_type = type(owner)
    assoc = registry.association(owner_type, association)

    if assoc.is_through:
        raise ArgumentError(
            f"cannot build through association '{association}' for {owner_type.__name__}. "
            "Instead build the intermediate steps explicitly"
        )
    if isinstance(assoc, BelongsTo):
        raise ArgumentError(
            f"cannot build belongs_to association '{association}' for {owner_type.__name__}: "
            "the parent key cannot be derived from the child"
        )

    values = dict(assoc.defaults)
    values.update(attrs or {})
    values[assoc.related_key] = get_field(owner, assoc.owner_key)
    return new_entity(assoc.related, values)


def assoc(
    registry: SchemaRegistry,
    owners: Any,
    association: str,
    base_query: Query | None = None,
) -> Query:
    """Return the query that fetches *association* for one owner or a list of owners.

    Owners whose key is None are skipped; duplicate keys are collapsed.

    Raises:
        ArgumentError: For an empty or heterogeneous list.
        UnknownAssociationError: If the association does not exist.
    """
    entities = list(owners) if isinstance(owners, (list, tuple)) else [owners]

    if not entities:
        raise ArgumentError("cannot retrieve association for empty list")
    if not same_type(entities):
        names = sorted({type(e).__name__ for e in entities})
        raise ArgumentError(
            f"expected a homogeneous list containing the same entity type, got: {names}"
        )

    association_desc = registry.association(type(entities[0]), association)
    values: list[Any] = []
    for entity in entities:
        value = get_field(entity, association_desc.owner_key)
        if value is not None and value not in values:
            values.append(value)

    return filter_query(registry, association_desc, values, base_query)
