"""Association descriptor data classes.

Frozen dataclasses describing one relationship each. Direct kinds carry
join keys and replacement policy; through kinds carry only the path of
intermediate association names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Union

from row_graph.core.enums import AssociationKind, Cardinality, OnReplace


class NotLoaded:
    """Sentinel stored in relation fields that were never fetched."""

    _instance: NotLoaded | None = None

    def __new__(cls) -> NotLoaded:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<NotLoaded>"


NOT_LOADED = NotLoaded()


def is_loaded(value: Any) -> bool:
    return value is not NOT_LOADED


@dataclass(frozen=True)
class JoinCondition:
    """Equality between a column on the owner and a column on the related side."""

    owner_field: str
    related_field: str
    op: str = "=="


@dataclass(frozen=True)
class _Direct:
    field: str
    owner: type
    related: type
    owner_key: str
    related_key: str
    on_replace: OnReplace = OnReplace.RAISE
    related_source: str | None = None
    on_cast: Callable[..., Any] | str | None = None
    defaults: dict[str, Any] = field(default_factory=dict, hash=False)

    kind = AssociationKind.HAS_ONE

    @property
    def cardinality(self) -> Cardinality:
        return _CARDINALITY[self.kind]

    @property
    def is_through(self) -> bool:
        return False


@dataclass(frozen=True)
class HasOne(_Direct):
    """Owner primary key is referenced by one related row."""

    kind = AssociationKind.HAS_ONE


@dataclass(frozen=True)
class HasMany(_Direct):
    """Owner primary key is referenced by many related rows."""

    kind = AssociationKind.HAS_MANY


@dataclass(frozen=True)
class BelongsTo(_Direct):
    """Owner holds the foreign key pointing at the related primary key."""

    kind = AssociationKind.BELONGS_TO
    on_replace: OnReplace = OnReplace.IGNORE


@dataclass(frozen=True)
class _Through:
    field: str
    owner: type
    owner_key: str
    through: tuple[str, ...]
    on_cast: Callable[..., Any] | str | None = None

    kind = AssociationKind.HAS_ONE_THROUGH

    @property
    def cardinality(self) -> Cardinality:
        return _CARDINALITY[self.kind]

    @property
    def is_through(self) -> bool:
        return True


@dataclass(frozen=True)
class HasOneThrough(_Through):
    kind = AssociationKind.HAS_ONE_THROUGH


@dataclass(frozen=True)
class HasManyThrough(_Through):
    kind = AssociationKind.HAS_MANY_THROUGH


_CARDINALITY = {
    AssociationKind.HAS_ONE: Cardinality.ONE,
    AssociationKind.HAS_MANY: Cardinality.MANY,
    AssociationKind.BELONGS_TO: Cardinality.ONE,
    AssociationKind.HAS_ONE_THROUGH: Cardinality.ONE,
    AssociationKind.HAS_MANY_THROUGH: Cardinality.MANY,
}

DirectAssociation = Union[HasOne, HasMany, BelongsTo]
ThroughAssociation = Union[HasOneThrough, HasManyThrough]
Association = Union[HasOne, HasMany, BelongsTo, HasOneThrough, HasManyThrough]


def join_condition(assoc: DirectAssociation) -> JoinCondition:
    """Return the column pair joining owner and related storage.

    Has-one/has-many join ``related.fk == owner.pk``; belongs-to joins
    ``related.pk == owner.fk``. Both are expressed as
    ``(owner.owner_key, related.related_key)``, so a has-* association and
    its inverse belongs-to reference the same two columns swapped.
    """
    return JoinCondition(owner_field=assoc.owner_key, related_field=assoc.related_key)
