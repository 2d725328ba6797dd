"""Preloader - fetches associations for already loaded entities and stitches them.

One query per association and nesting level, regardless of how many
owners are preloaded. Fetched rows are grouped by their join key in a
single pass and attached to owners by key equality; through associations
are then filled in from the intermediate steps they walk.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from row_graph.association.resolver import filter_query
from row_graph.core.enums import Cardinality
from row_graph.core.exceptions import ArgumentError
from row_graph.mapping.descriptor import NOT_LOADED, is_loaded
from row_graph.mapping.model import get_field, put_fields, same_type
from row_graph.preload.expander import AssocInfo, PreloadEntry, expand
from row_graph.preload.normalizer import normalize
from row_graph.query.expr import FieldRef

if TYPE_CHECKING:
    from row_graph.core.config import GraphConfig
    from row_graph.core.registry import SchemaRegistry
    from row_graph.mapping.protocol import QueryExecutor

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class Preloader:
    """Loads associations onto entities through a caller-supplied executor.

    Args:
        registry: Schema registry used to resolve associations.
        executor: Anything with ``all(query) -> list`` returning entities.
        config: Overrides ``registry.config`` when given.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        executor: QueryExecutor,
        config: GraphConfig | None = None,
    ) -> None:
        self._registry = registry
        self._executor = executor
        self._config = config or registry.config

    def preload(self, entities: Any, spec: Any) -> Any:
        """Preload *spec* onto one entity or a list of entities.

        Returns new entities; the inputs are left untouched. Fields that
        are already loaded are kept as they are, though nested preloads
        still apply to their contents.

        Raises:
            InvalidPreloadError, PreloadConflictError: For a malformed spec.
            UnknownAssociationError: For a name that is not an association.
            ArgumentError: For a list mixing entity types.
        """
        if entities is None:
            return None
        single = not isinstance(entities, (list, tuple))
        items = [entities] if single else list(entities)
        if not items:
            return []

        if not same_type(items):
            names = sorted({type(e).__name__ for e in items})
            raise ArgumentError(
                f"expected a homogeneous list containing the same entity type, got: {names}"
            )

        mapping = normalize(spec)
        entries = expand(self._registry, type(items[0]), mapping)
        logger.debug(
            "preload plan for %d %s: %s",
            len(items),
            type(items[0]).__name__,
            [entry.name for entry in entries],
        )
        result = self._apply(items, entries)
        return result[0] if single else result

    # --- Internal ---

    def _apply(self, entities: list[Any], entries: tuple[PreloadEntry, ...]) -> list[Any]:
        if not entities or not entries:
            return entities

        for entry in entries:
            if isinstance(entry.info, AssocInfo):
                entities = self._load_direct(entities, entry)
            else:
                entities = [self._load_through(entity, entry) for entity in entities]
        return entities

    def _load_direct(self, entities: list[Any], entry: PreloadEntry) -> list[Any]:
        assoc = entry.info.descriptor  # type: ignore[union-attr]
        many = assoc.cardinality is Cardinality.MANY

        keys: list[Any] = []
        seen: set[Any] = set()
        for entity in entities:
            if is_loaded(get_field(entity, assoc.field, NOT_LOADED)):
                continue
            key = get_field(entity, assoc.owner_key)
            if key is not None and key not in seen:
                seen.add(key)
                keys.append(key)

        grouped = self._fetch(entry, keys) if keys else {}

        result = []
        for entity in entities:
            current = get_field(entity, assoc.field, NOT_LOADED)
            if is_loaded(current):
                if entry.nested and current:
                    children = self._apply(_as_list(current), entry.nested)
                    value = children if many else children[0]
                    entity = put_fields(entity, {assoc.field: value})
                result.append(entity)
                continue

            key = get_field(entity, assoc.owner_key)
            value = grouped.get(key) if key is not None else None
            if value is None:
                value = [] if many else None
            result.append(put_fields(entity, {assoc.field: value}))
        return result

    def _fetch(self, entry: PreloadEntry, keys: list[Any]) -> dict[Any, Any]:
        assoc = entry.info.descriptor  # type: ignore[union-attr]
        join_key = entry.info.join_key  # type: ignore[union-attr]
        many = assoc.cardinality is Cardinality.MANY

        query = filter_query(self._registry, assoc, keys, entry.query)
        if many and self._config.order_many_preloads:
            binding = query.binding
            if query.entity is not None and query.entity is not assoc.related:
                binding = next(
                    (j.binding for j in query.joins if j.entity is assoc.related), binding
                )
            query = query.prepend_order_by(FieldRef(binding, join_key))

        rows = list(self._executor.all(query))
        logger.debug(
            "preloaded %s.%s: %d row(s) for %d key(s)",
            assoc.owner.__name__,
            assoc.field,
            len(rows),
            len(keys),
        )
        if entry.nested:
            rows = self._apply(rows, entry.nested)

        grouped: dict[Any, Any] = {}
        for row in rows:
            key = get_field(row, join_key)
            if many:
                grouped.setdefault(key, []).append(row)
            elif key not in grouped:
                grouped[key] = row
        return grouped

    def _load_through(self, entity: Any, entry: PreloadEntry) -> Any:
        assoc = entry.info.descriptor
        if is_loaded(get_field(entity, assoc.field, NOT_LOADED)):
            return entity

        first, *rest = entry.info.path  # type: ignore[union-attr]
        current = self._loaded_value(entity, first, assoc.field)
        for step in rest:
            found: list[Any] = []
            identities: set[Any] = set()
            for item in current:
                for child in self._loaded_value(item, step, assoc.field):
                    pk = get_field(child, self._registry.primary_key_of(type(child)))
                    if pk is None:
                        raise ArgumentError(
                            f"cannot load through association '{assoc.field}': "
                            f"{type(child).__name__} reached via '{step}' has no primary key value"
                        )
                    if pk not in identities:
                        identities.add(pk)
                        found.append(child)
            current = found

        if assoc.cardinality is Cardinality.MANY:
            value: Any = current
        else:
            value = current[0] if current else None
        return put_fields(entity, {assoc.field: value})

    @staticmethod
    def _loaded_value(entity: Any, step: str, through_field: str) -> list[Any]:
        value = get_field(entity, step, NOT_LOADED)
        if not is_loaded(value):
            raise ArgumentError(
                f"cannot load through association '{through_field}': "
                f"'{step}' of {type(entity).__name__} is not loaded"
            )
        return _as_list(value)
