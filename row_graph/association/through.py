"""Through-association composer.

A through association is never stored: it is expanded into the chain of
concrete associations it walks, and queried as a single flattened query
against the final related type joined back to the first step.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from row_graph.core.exceptions import (
    ConfigurationError,
    ThroughCycleError,
    UnknownAssociationError,
)
from row_graph.mapping.descriptor import (
    DirectAssociation,
    ThroughAssociation,
)
from row_graph.query.expr import Eq, FieldRef, In
from row_graph.query.query import Join, Query

if TYPE_CHECKING:
    from row_graph.core.registry import SchemaRegistry

logger = logging.getLogger(__name__)


def expand_path(registry: SchemaRegistry, assoc: ThroughAssociation) -> list[DirectAssociation]:
    """Flatten a through path into concrete associations, depth first.

    Nested through steps are spliced in place. Uses an explicit work
    stack; each entry carries the through associations it was expanded
    from so a path that revisits itself fails instead of looping.

    Raises:
        UnknownAssociationError: If a step does not exist on the preceding type.
        ThroughCycleError: If a through step is reached from itself.
        ConfigurationError: If nesting exceeds ``config.max_through_depth``.
    """
    max_depth = registry.config.max_through_depth
    root = (assoc.owner, assoc.field)
    work = [(name, (root,)) for name in reversed(assoc.through)]
    chain: list[DirectAssociation] = []
    current = assoc.owner

    while work:
        name, ancestry = work.pop()
        step = registry.get_descriptor(current, name)
        if step is None:
            raise UnknownAssociationError(
                current, name, f"used by through association '{assoc.field}'"
            )

        if step.is_through:
            key = (current, name)
            if key in ancestry:
                path = [f"{t.__name__}.{f}" for t, f in ancestry + (key,)]
                raise ThroughCycleError(assoc.field, path)
            if len(ancestry) >= max_depth:
                raise ConfigurationError(
                    f"through association '{assoc.field}' nests deeper than "
                    f"max_through_depth={max_depth}"
                )
            for sub in reversed(step.through):  # type: ignore[union-attr]
                work.append((sub, ancestry + (key,)))
            continue

        chain.append(step)  # type: ignore[arg-type]
        current = step.related  # type: ignore[union-attr]

    logger.debug(
        "expanded through %s.%s into %s",
        assoc.owner.__name__,
        assoc.field,
        [f"{s.owner.__name__}.{s.field}" for s in chain],
    )
    return chain


def _source(registry: SchemaRegistry, step: DirectAssociation) -> str:
    return step.related_source or registry.source_of(step.related)


def _reusable_join(
    query: Query, claimed: set[str], entity: type, expected: tuple[FieldRef, str]
) -> Join | None:
    """Find an unclaimed join of *entity* whose condition matches *expected*."""
    other, column = expected
    for join in query.joins:
        if join.binding in claimed or join.entity is not entity:
            continue
        if isinstance(join.on, Eq) and join.on.references(FieldRef(join.binding, column), other):
            return join
    return None


def filter_query(
    registry: SchemaRegistry,
    assoc: ThroughAssociation,
    owner_key_values: Iterable[Any],
    base_query: Query | None = None,
) -> Query:
    """Build the flattened query for a through association.

    Selects from the final related type and joins back through every
    intermediate type up to the first step, where the owner key filter
    applies. Joins of a custom *base_query* that match a prefix of the
    generated chain are reused; only the remaining suffix is appended.
    """
    chain = expand_path(registry, assoc)
    last = chain[-1]
    query = base_query or Query.of(last.related, _source(registry, last))

    previous = query.binding
    claimed: set[str] = set()
    reusing = True

    # Walk from the final step back to the first one. Step k joins
    # its owner type onto the binding of its related type.
    for k in range(len(chain) - 1, 0, -1):
        step, owner_step = chain[k], chain[k - 1]
        expected = (FieldRef(previous, step.related_key), step.owner_key)
        join = _reusable_join(query, claimed, step.owner, expected) if reusing else None
        if join is None:
            reusing = False
            binding = query.fresh_binding()
            query = query.join(
                _source(registry, owner_step),
                Eq(FieldRef(binding, step.owner_key), FieldRef(previous, step.related_key)),
                entity=step.owner,
                binding=binding,
            )
        else:
            binding = join.binding
        claimed.add(binding)
        previous = binding

    first = chain[0]
    query = query.filter(In(FieldRef(previous, first.related_key), tuple(owner_key_values)))

    if registry.config.through_distinct:
        pk = registry.primary_key_of(last.related)
        query = query.distinct_on(FieldRef(query.binding, pk))
    return query
