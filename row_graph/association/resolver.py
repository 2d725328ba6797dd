"""Association resolver.

Builds the queries that fetch associated rows for a set of owner key
values, and the join chain that reaches an association from its owner.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from row_graph.association import through
from row_graph.mapping.descriptor import Association, DirectAssociation, join_condition
from row_graph.query.expr import Eq, FieldRef, In
from row_graph.query.query import Join, Query

if TYPE_CHECKING:
    from row_graph.core.registry import SchemaRegistry


def related_source(registry: SchemaRegistry, assoc: DirectAssociation) -> str:
    """Storage name of the related side, honoring a per-association override."""
    return assoc.related_source or registry.source_of(assoc.related)


def _related_binding(query: Query, assoc: DirectAssociation) -> str:
    """Binding that holds the related entity inside *query*.

    A custom query may select from another source and join the related
    one itself; the filter then attaches to that existing join.
    """
    if query.entity is None or query.entity is assoc.related:
        return query.binding
    for join in query.joins:
        if join.entity is assoc.related:
            return join.binding
    return query.binding


def filter_query(
    registry: SchemaRegistry,
    assoc: Association,
    owner_key_values: Iterable[Any],
    base_query: Query | None = None,
) -> Query:
    """Build a query fetching every related row for *owner_key_values*.

    The filter ``related.<related_key> IN values`` is ANDed onto
    *base_query* when given; its joins, ordering and paging are kept.
    An empty value list still produces the filter, matching no rows.
    """
    if assoc.is_through:
        return through.filter_query(registry, assoc, owner_key_values, base_query)  # type: ignore[arg-type]

    direct: DirectAssociation = assoc  # type: ignore[assignment]
    query = base_query or Query.of(direct.related, related_source(registry, direct))
    binding = _related_binding(query, direct)
    return query.filter(In(FieldRef(binding, direct.related_key), tuple(owner_key_values)))


def join_chain(registry: SchemaRegistry, assoc: Association) -> list[Join]:
    """Inner joins reaching *assoc* from its owner bound to ``x0``.

    A direct association yields one join; a through association yields
    one join per concrete step after depth-first expansion.
    """
    steps = through.expand_path(registry, assoc) if assoc.is_through else [assoc]
    joins: list[Join] = []
    previous = "x0"
    for i, step in enumerate(steps, start=1):
        binding = f"x{i}"
        condition = join_condition(step)  # type: ignore[arg-type]
        joins.append(
            Join(
                binding=binding,
                source=related_source(registry, step),  # type: ignore[arg-type]
                entity=step.related,  # type: ignore[union-attr]
                on=Eq(
                    FieldRef(binding, condition.related_field),
                    FieldRef(previous, condition.owner_field),
                ),
            )
        )
        previous = binding
    return joins


def joins_query(registry: SchemaRegistry, assoc: Association) -> Query:
    """Query from the owner joined all the way to the association target."""
    query = Query.of(assoc.owner, registry.source_of(assoc.owner))
    for join in join_chain(registry, assoc):
        query = query.join(join.source, join.on, entity=join.entity, binding=join.binding)
    return query
