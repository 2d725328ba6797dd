"""RowGraph - association graphs, preloading and nested changeset reconciliation."""

from __future__ import annotations

from row_graph.association.helpers import assoc, build
from row_graph.association.resolver import filter_query, join_chain
from row_graph.changeset.assoc import cast_assoc, put_assoc
from row_graph.changeset.changeset import (
    Changeset,
    add_error,
    apply_changes,
    cast,
    change,
    put_action,
    put_change,
    traverse_errors,
)
from row_graph.changeset.relation import RelationResult, cast_relation
from row_graph.changeset.relation import change as change_relation
from row_graph.core.config import GraphConfig
from row_graph.core.enums import (
    Action,
    AssociationKind,
    Cardinality,
    OnReplace,
    RelationStatus,
)
from row_graph.core.exceptions import (
    ArgumentError,
    ConfigurationError,
    InvalidPreloadError,
    InvariantViolation,
    NotLoadedError,
    PreloadConflictError,
    RelationActionError,
    ReplaceNotAllowedError,
    RowGraphError,
    SchemaDefinitionError,
    ThroughCycleError,
    UnknownAssociationError,
)
from row_graph.core.registry import SchemaRegistry
from row_graph.mapping.builder import schema
from row_graph.mapping.descriptor import NOT_LOADED, NotLoaded, is_loaded, join_condition
from row_graph.preload.expander import expand
from row_graph.preload.normalizer import normalize
from row_graph.preload.preloader import Preloader
from row_graph.query.expr import Eq, FieldRef, In
from row_graph.query.query import Join, Query
from row_graph.repository.base import Repository

__all__ = [
    # Schema
    "schema",
    "SchemaRegistry",
    "GraphConfig",
    # Descriptors
    "NotLoaded",
    "NOT_LOADED",
    "is_loaded",
    "join_condition",
    # Query
    "Query",
    "Join",
    "FieldRef",
    "Eq",
    "In",
    # Association
    "filter_query",
    "join_chain",
    "assoc",
    "build",
    # Preload
    "normalize",
    "expand",
    "Preloader",
    # Changeset
    "Changeset",
    "change",
    "cast",
    "put_change",
    "put_action",
    "add_error",
    "apply_changes",
    "traverse_errors",
    "RelationResult",
    "change_relation",
    "cast_relation",
    "put_assoc",
    "cast_assoc",
    # Repository
    "Repository",
    # Enums
    "Action",
    "AssociationKind",
    "Cardinality",
    "OnReplace",
    "RelationStatus",
    # Exceptions
    "RowGraphError",
    "ConfigurationError",
    "SchemaDefinitionError",
    "UnknownAssociationError",
    "ThroughCycleError",
    "ArgumentError",
    "InvalidPreloadError",
    "PreloadConflictError",
    "NotLoadedError",
    "InvariantViolation",
    "ReplaceNotAllowedError",
    "RelationActionError",
]
