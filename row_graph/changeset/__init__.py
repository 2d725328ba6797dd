"""Changeset layer - staged changes and nested relation reconciliation."""

from __future__ import annotations

from row_graph.changeset.assoc import cast_assoc, put_assoc
from row_graph.changeset.changeset import (
    Changeset,
    add_error,
    apply_changes,
    cast,
    change,
    put_action,
    put_change,
    put_new_action,
    traverse_errors,
)
from row_graph.changeset.relation import RelationResult, cast_relation
from row_graph.changeset.relation import change as change_relation

__all__ = [
    "Changeset",
    "change",
    "cast",
    "put_change",
    "put_action",
    "put_new_action",
    "add_error",
    "apply_changes",
    "traverse_errors",
    "RelationResult",
    "change_relation",
    "cast_relation",
    "put_assoc",
    "cast_assoc",
]
