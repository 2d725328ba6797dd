"""Collaborator protocols.

The reconciler builds nested changesets through a ``ChangesetFunction``
resolved per related type. The preloader never talks to storage directly:
it hands every built query to a ``QueryExecutor``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from row_graph.changeset.changeset import Changeset
    from row_graph.query.query import Query


class ChangesetFunction(Protocol):
    """Builds a changeset for ``entity`` from user-supplied ``params``."""

    def __call__(self, entity: Any, params: dict[str, Any]) -> Changeset:
        ...


@runtime_checkable
class QueryExecutor(Protocol):
    """Storage-side executor for built queries."""

    def all(self, query: Query) -> list[Any]:
        """Execute the query and return the matching entities."""
        ...
