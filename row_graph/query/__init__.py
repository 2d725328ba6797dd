"""Query value objects."""

from __future__ import annotations

from row_graph.query.expr import Eq, FieldRef, In, Predicate
from row_graph.query.query import Join, Query

__all__ = [
    "Query",
    "Join",
    "FieldRef",
    "Eq",
    "In",
    "Predicate",
]
