"""Immutable query value object.

A Query describes what to fetch: a root source bound to a name, inner
joins against other sources, a conjunction of predicates, ordering,
distinctness and paging. Compiling it to a storage dialect is the job
of whatever executes it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from row_graph.query.expr import FieldRef, Predicate


@dataclass(frozen=True)
class Join:
    """An inner join of ``source`` bound to ``binding`` on ``on``."""

    binding: str
    source: str
    entity: type | None
    on: Predicate
    kind: str = "inner"


@dataclass(frozen=True)
class Query:
    """Query over ``source`` with the root bound to ``binding``."""

    source: str
    entity: type | None = None
    binding: str = "x0"
    joins: tuple[Join, ...] = ()
    wheres: tuple[Predicate, ...] = ()
    order_bys: tuple[tuple[FieldRef, str], ...] = ()
    distinct: tuple[FieldRef, ...] = ()
    row_limit: int | None = None
    row_offset: int | None = None
    columns: tuple[str, ...] | None = None

    @classmethod
    def of(cls, entity: type | None, source: str) -> Query:
        return cls(source=source, entity=entity)

    @property
    def bindings(self) -> tuple[str, ...]:
        return (self.binding,) + tuple(j.binding for j in self.joins)

    def field(self, name: str, binding: str | None = None) -> FieldRef:
        return FieldRef(binding or self.binding, name)

    def fresh_binding(self) -> str:
        """Return the first ``xN`` binding name not used by this query."""
        used = set(self.bindings)
        i = len(used)
        while f"x{i}" in used:
            i += 1
        return f"x{i}"

    def filter(self, predicate: Predicate) -> Query:
        """AND *predicate* with the existing where-clauses."""
        return replace(self, wheres=self.wheres + (predicate,))

    def join(
        self,
        source: str,
        on: Predicate,
        *,
        entity: type | None = None,
        binding: str | None = None,
    ) -> Query:
        join = Join(binding=binding or self.fresh_binding(), source=source, entity=entity, on=on)
        return replace(self, joins=self.joins + (join,))

    def distinct_on(self, *fields: FieldRef) -> Query:
        return replace(self, distinct=tuple(fields))

    def order_by(self, field: FieldRef, direction: str = "asc") -> Query:
        return replace(self, order_bys=self.order_bys + ((field, direction),))

    def prepend_order_by(self, field: FieldRef, direction: str = "asc") -> Query:
        return replace(self, order_bys=((field, direction),) + self.order_bys)

    def limit(self, count: int) -> Query:
        return replace(self, row_limit=count)

    def offset(self, count: int) -> Query:
        return replace(self, row_offset=count)

    def select(self, *columns: str) -> Query:
        return replace(self, columns=tuple(columns))

    def find_join(self, binding: str) -> Join | None:
        for join in self.joins:
            if join.binding == binding:
                return join
        return None

    def describe(self) -> dict[str, Any]:
        """Plain-data view, used in log records and error messages."""
        return {
            "from": f"{self.source} as {self.binding}",
            "joins": [f"{j.source} as {j.binding} on {j.on}" for j in self.joins],
            "where": [str(w) for w in self.wheres],
            "order_by": [f"{f} {d}" for f, d in self.order_bys],
            "distinct": [str(f) for f in self.distinct],
            "limit": self.row_limit,
            "offset": self.row_offset,
        }
