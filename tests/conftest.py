"""Shared test fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from graph_models import Comment, Permalink, Post, User, blog_registry
from row_graph.core.registry import SchemaRegistry
from row_graph.query.expr import Eq, FieldRef, In, Predicate
from row_graph.query.query import Query


class InMemoryExecutor:
    """Evaluates Query objects over lists of entities keyed by source name.

    Every executed query is recorded in ``queries``.
    """

    def __init__(self, tables: dict[str, list[Any]]) -> None:
        self.tables = {source: list(rows) for source, rows in tables.items()}
        self.queries: list[Query] = []

    def all(self, query: Query) -> list[Any]:
        self.queries.append(query)

        rows = [{query.binding: entity} for entity in self.tables.get(query.source, [])]
        for join in query.joins:
            joined = []
            for row in rows:
                for entity in self.tables.get(join.source, []):
                    candidate = {**row, join.binding: entity}
                    if _matches(join.on, candidate):
                        joined.append(candidate)
            rows = joined

        rows = [row for row in rows if all(_matches(p, row) for p in query.wheres)]

        for ref, direction in reversed(query.order_bys):
            rows.sort(key=lambda row, ref=ref: _value(row, ref), reverse=direction == "desc")

        if query.distinct:
            seen: set[tuple[Any, ...]] = set()
            unique = []
            for row in rows:
                key = tuple(_value(row, ref) for ref in query.distinct)
                if key not in seen:
                    seen.add(key)
                    unique.append(row)
            rows = unique

        if query.row_offset:
            rows = rows[query.row_offset :]
        if query.row_limit is not None:
            rows = rows[: query.row_limit]
        return [row[query.binding] for row in rows]


def _value(row: dict[str, Any], ref: FieldRef) -> Any:
    return getattr(row[ref.binding], ref.name)


def _matches(predicate: Predicate, row: dict[str, Any]) -> bool:
    if isinstance(predicate, Eq):
        left = _value(row, predicate.left)
        return left is not None and left == _value(row, predicate.right)
    if isinstance(predicate, In):
        return _value(row, predicate.field) in predicate.values
    raise TypeError(f"unsupported predicate {predicate!r}")


@pytest.fixture
def registry() -> SchemaRegistry:
    """Blog registry with on_replace=RAISE on every has-* association."""
    return blog_registry()


@pytest.fixture
def blog_tables() -> dict[str, list[Any]]:
    """Two users, three posts, four comments and one permalink.

    Alice (1) wrote posts 10 and 11, Bob (2) wrote post 12. Both users
    commented on post 10; Bob also commented on post 11 twice.
    """
    return {
        "users": [User(id=1, name="alice"), User(id=2, name="bob")],
        "posts": [
            Post(id=10, title="first", author_id=1),
            Post(id=11, title="second", author_id=1),
            Post(id=12, title="third", author_id=2),
        ],
        "comments": [
            Comment(id=100, text="nice", post_id=10, author_id=2),
            Comment(id=101, text="thanks", post_id=10, author_id=1),
            Comment(id=102, text="hmm", post_id=11, author_id=2),
            Comment(id=103, text="again", post_id=11, author_id=2),
        ],
        "permalinks": [Permalink(id=1000, url="/first", post_id=10)],
    }


@pytest.fixture
def executor(blog_tables: dict[str, list[Any]]) -> InMemoryExecutor:
    return InMemoryExecutor(blog_tables)
