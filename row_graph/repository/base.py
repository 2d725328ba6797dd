"""Repository base class.

Thin wrapper over a registry and a query executor for DDD-oriented usage.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from row_graph.association.helpers import assoc as assoc_query
from row_graph.association.helpers import build as build_related
from row_graph.core.registry import SchemaRegistry
from row_graph.mapping.protocol import QueryExecutor
from row_graph.preload.preloader import Preloader
from row_graph.query.query import Query

T = TypeVar("T")


class Repository(Generic[T]):
    """Base repository class for DDD-oriented usage.

    Subclasses define concrete data access methods; associations are
    loaded with ``preload`` and queried with ``assoc`` / ``all_assoc``.
    """

    def __init__(self, registry: SchemaRegistry, executor: QueryExecutor) -> None:
        self.registry = registry
        self.executor = executor
        self.preloader = Preloader(registry, executor)

    def preload(self, entities: Any, spec: Any) -> Any:
        """Load the associations named by *spec* onto one entity or a list."""
        return self.preloader.preload(entities, spec)

    def assoc(self, owners: Any, association: str, base_query: Query | None = None) -> Query:
        """Query for *association* of one owner or a list of owners."""
        return assoc_query(self.registry, owners, association, base_query)

    def all_assoc(
        self, owners: Any, association: str, base_query: Query | None = None
    ) -> list[Any]:
        """Execute ``assoc`` and return the related entities."""
        return list(self.executor.all(self.assoc(owners, association, base_query)))

    def build(self, owner: Any, association: str, attrs: dict[str, Any] | None = None) -> Any:
        return build_related(self.registry, owner, association, attrs)
