"""Mapping layer - schema declarations and association descriptors."""

from __future__ import annotations

from row_graph.mapping.builder import AssociationOptions, SchemaBuilder, schema
from row_graph.mapping.descriptor import (
    NOT_LOADED,
    BelongsTo,
    HasMany,
    HasManyThrough,
    HasOne,
    HasOneThrough,
    JoinCondition,
    NotLoaded,
    is_loaded,
    join_condition,
)
from row_graph.mapping.schema import SchemaInfo

__all__ = [
    "schema",
    "SchemaBuilder",
    "AssociationOptions",
    "SchemaInfo",
    "HasOne",
    "HasMany",
    "BelongsTo",
    "HasOneThrough",
    "HasManyThrough",
    "JoinCondition",
    "join_condition",
    "NotLoaded",
    "NOT_LOADED",
    "is_loaded",
]
