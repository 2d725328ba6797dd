"""Schema declaration DSL builder.

Provides a fluent builder for declaring an entity's storage source,
primary key and associations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, ValidationError

from row_graph.core.enums import OnReplace
from row_graph.core.exceptions import SchemaDefinitionError
from row_graph.mapping.descriptor import (
    Association,
    BelongsTo,
    HasMany,
    HasManyThrough,
    HasOne,
    HasOneThrough,
)
from row_graph.mapping.model import field_names
from row_graph.mapping.schema import SchemaInfo, association_key, underscore

if TYPE_CHECKING:
    from row_graph.mapping.protocol import ChangesetFunction


class AssociationOptions(BaseModel):
    """Options accepted by the direct association declarations."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    foreign_key: str | None = None
    references: str | None = None
    on_replace: OnReplace | None = None
    source: str | None = None
    on_cast: Any = None
    defaults: dict[str, Any] = {}


def schema(entity_class: type, source: str | None = None) -> SchemaBuilder:
    """Entry point for the schema DSL.

    Args:
        entity_class: The entity class being described.
        source: Storage name (table/collection). Defaults to the
                snake_cased class name.

    Returns:
        A builder for chaining association declarations.
    """
    if source is None:
        source = underscore(entity_class.__name__)
    return SchemaBuilder(entity_class, source)


class SchemaBuilder:
    """Fluent builder for schema definitions."""

    def __init__(self, entity_class: type, source: str) -> None:
        self._entity_class = entity_class
        self._source = source
        self._key_field: str | None = None
        self._on_cast: ChangesetFunction | str | None = None
        # name, class, related, options
        self._direct: list[tuple[str, type, type, AssociationOptions]] = []
        # name, class, through path
        self._through: list[tuple[str, type, tuple[str, ...]]] = []

    def key(self, field_name: str) -> SchemaBuilder:
        """Set the primary key field."""
        self._key_field = field_name
        return self

    def on_cast(self, fn: ChangesetFunction | str) -> SchemaBuilder:
        """Set the changeset function used when this entity is cast as a relation."""
        self._on_cast = fn
        return self

    def has_one(self, name: str, related: type, **options: Any) -> SchemaBuilder:
        """Declare a has-one association (related row holds the foreign key)."""
        return self._add_direct(name, HasOne, related, options)

    def has_many(self, name: str, related: type, **options: Any) -> SchemaBuilder:
        """Declare a has-many association (related rows hold the foreign key)."""
        return self._add_direct(name, HasMany, related, options)

    def belongs_to(self, name: str, related: type, **options: Any) -> SchemaBuilder:
        """Declare a belongs-to association (this entity holds the foreign key)."""
        return self._add_direct(name, BelongsTo, related, options)

    def has_one_through(self, name: str, through: list[str] | tuple[str, ...]) -> SchemaBuilder:
        """Declare a has-one association over a path of other associations."""
        self._through.append((name, HasOneThrough, tuple(through)))
        return self

    def has_many_through(self, name: str, through: list[str] | tuple[str, ...]) -> SchemaBuilder:
        """Declare a has-many association over a path of other associations."""
        self._through.append((name, HasManyThrough, tuple(through)))
        return self

    def _add_direct(
        self, name: str, cls: type, related: type, options: dict[str, Any]
    ) -> SchemaBuilder:
        try:
            parsed = AssociationOptions(**options)
        except ValidationError as e:
            raise SchemaDefinitionError(
                f"invalid options for association '{name}' of "
                f"{self._entity_class.__name__}: {e}"
            ) from e
        self._direct.append((name, cls, related, parsed))
        return self

    def build(self) -> SchemaInfo:
        """Compile and validate the declarations into a SchemaInfo."""
        entity_fields = field_names(self._entity_class)

        key_field = self._key_field
        if key_field is None:
            if "id" not in entity_fields:
                raise SchemaDefinitionError(
                    f"Schema {self._entity_class.__name__} must have a primary key "
                    "set via .key()"
                )
            key_field = "id"

        associations: dict[str, Association] = {}

        for name, cls, related, opts in self._direct:
            if name in associations:
                raise SchemaDefinitionError(
                    f"Duplicate association '{name}' on {self._entity_class.__name__}"
                )
            associations[name] = self._build_direct(name, cls, related, opts, key_field)

        for name, cls, path in self._through:
            if name in associations:
                raise SchemaDefinitionError(
                    f"Duplicate association '{name}' on {self._entity_class.__name__}"
                )
            if len(path) < 2:
                raise SchemaDefinitionError(
                    "through expects a list with at least two entries: the association "
                    f"in the current schema and one step through, got: {list(path)}"
                )
            first = associations.get(path[0])
            if first is None:
                raise SchemaDefinitionError(
                    f"schema does not have the association '{path[0]}' used by association "
                    f"'{name}', please ensure the association exists and is defined "
                    "before the through one"
                )
            associations[name] = cls(
                field=name,
                owner=self._entity_class,
                owner_key=first.owner_key,
                through=path,
            )

        relation_names = set(associations)
        return SchemaInfo(
            entity=self._entity_class,
            source=self._source,
            primary_key=key_field,
            fields=tuple(n for n in entity_fields if n not in relation_names),
            associations=associations,
            on_cast=self._on_cast,
        )

    def _build_direct(
        self,
        name: str,
        cls: type,
        related: type,
        opts: AssociationOptions,
        key_field: str,
    ) -> Association:
        if cls is BelongsTo:
            owner_key = opts.foreign_key or f"{name}_id"
            related_key = opts.references or "id"
            on_replace = opts.on_replace or OnReplace.IGNORE
        else:
            owner_key = opts.references or key_field
            related_key = opts.foreign_key or association_key(self._entity_class, owner_key)
            on_replace = opts.on_replace or OnReplace.RAISE

        field_set = set(field_names(self._entity_class))
        if field_set and owner_key not in field_set:
            raise SchemaDefinitionError(
                f"schema does not have the field '{owner_key}' used by association "
                f"'{name}', please set the references/foreign_key option accordingly"
            )

        return cls(  # type: ignore[no-any-return]
            field=name,
            owner=self._entity_class,
            related=related,
            owner_key=owner_key,
            related_key=related_key,
            on_replace=on_replace,
            related_source=opts.source,
            on_cast=opts.on_cast,
            defaults=dict(opts.defaults),
        )
