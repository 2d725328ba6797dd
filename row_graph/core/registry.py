"""Schema registry - resolves entity types to schemas and associations.

The registry is immutable after construction: declare schemas once at
startup, then read-only lookups for the lifetime of the application.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from row_graph.core.config import GraphConfig
from row_graph.core.exceptions import SchemaDefinitionError, UnknownAssociationError

if TYPE_CHECKING:
    from row_graph.mapping.descriptor import Association
    from row_graph.mapping.protocol import ChangesetFunction
    from row_graph.mapping.schema import SchemaInfo


class SchemaRegistry:
    """Read-only lookup service for schemas and association descriptors.

    Args:
        schemas: Compiled schemas (see ``row_graph.mapping.builder.schema``).
        config: Planner configuration. Defaults to ``GraphConfig()``.

    Raises:
        SchemaDefinitionError: If two schemas describe the same entity type.
    """

    def __init__(
        self,
        schemas: Iterable[SchemaInfo] = (),
        config: GraphConfig | None = None,
    ) -> None:
        self.config = config or GraphConfig()
        self._schemas: dict[type, SchemaInfo] = {}
        for info in schemas:
            if info.entity in self._schemas:
                raise SchemaDefinitionError(
                    f"Duplicate schema for {info.entity.__name__}"
                )
            self._schemas[info.entity] = info

    def get_schema(self, entity_type: type) -> SchemaInfo:
        """Look up the schema of an entity type.

        Raises:
            SchemaDefinitionError: If the type was never registered.
        """
        try:
            return self._schemas[entity_type]
        except KeyError:
            raise SchemaDefinitionError(
                f"{entity_type.__name__} is not a registered schema"
            ) from None

    def has(self, entity_type: type) -> bool:
        return entity_type in self._schemas

    def get_descriptor(self, entity_type: type, field: str) -> Association | None:
        """Return the association named *field* on *entity_type*, or None."""
        info = self._schemas.get(entity_type)
        if info is None:
            return None
        return info.association(field)

    def association(self, entity_type: type, field: str) -> Association:
        """Return the association named *field* on *entity_type*.

        Raises:
            UnknownAssociationError: If no such association is declared.
        """
        assoc = self.get_descriptor(entity_type, field)
        if assoc is None:
            raise UnknownAssociationError(entity_type, field)
        return assoc

    def source_of(self, entity_type: type) -> str:
        return self.get_schema(entity_type).source

    def primary_key_of(self, entity_type: type) -> str:
        return self.get_schema(entity_type).primary_key

    def changeset_fn(
        self,
        entity_type: type,
        on_cast: ChangesetFunction | str | None = None,
    ) -> ChangesetFunction:
        """Resolve the changeset function used to cast nested params.

        Resolution order: the association's ``on_cast``, the schema's
        ``on_cast``, then the generic ``cast`` over the schema fields.
        A string names a callable attribute of the entity class.
        """
        if on_cast is None and entity_type in self._schemas:
            on_cast = self._schemas[entity_type].on_cast
        if on_cast is None:
            return self._generic_cast(entity_type)
        if isinstance(on_cast, str):
            fn = getattr(entity_type, on_cast, None)
            if not callable(fn):
                raise SchemaDefinitionError(
                    f"{entity_type.__name__} has no changeset function '{on_cast}'"
                )
            return fn  # type: ignore[no-any-return]
        return on_cast

    def _generic_cast(self, entity_type: type) -> ChangesetFunction:
        from row_graph.changeset.changeset import cast

        permitted = list(self.get_schema(entity_type).fields)

        def _cast(entity: Any, params: dict[str, Any]) -> Any:
            return cast(entity, params, optional=permitted)

        return _cast

    @property
    def entity_types(self) -> list[type]:
        """List all registered entity types, sorted by name."""
        return sorted(self._schemas, key=lambda t: t.__name__)

    def __len__(self) -> int:
        """Number of registered schemas."""
        return len(self._schemas)
