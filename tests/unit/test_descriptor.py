"""Unit tests for association descriptors and the NotLoaded sentinel."""

from __future__ import annotations

from graph_models import Comment, Post
from row_graph.core.enums import Cardinality
from row_graph.core.registry import SchemaRegistry
from row_graph.mapping.descriptor import NOT_LOADED, NotLoaded, is_loaded, join_condition


class TestJoinCondition:
    def test_has_many_and_inverse_belongs_to_swap_columns(self, registry: SchemaRegistry) -> None:
        has_many = join_condition(registry.association(Post, "comments"))
        belongs_to = join_condition(registry.association(Comment, "post"))

        assert (has_many.owner_field, has_many.related_field) == ("id", "post_id")
        assert (belongs_to.owner_field, belongs_to.related_field) == ("post_id", "id")
        assert (has_many.owner_field, has_many.related_field) == (
            belongs_to.related_field,
            belongs_to.owner_field,
        )
        assert has_many.op == belongs_to.op == "=="

    def test_has_one(self, registry: SchemaRegistry) -> None:
        condition = join_condition(registry.association(Post, "permalink"))
        assert condition.owner_field == "id"
        assert condition.related_field == "post_id"


class TestCardinality:
    def test_by_kind(self, registry: SchemaRegistry) -> None:
        assert registry.association(Post, "permalink").cardinality is Cardinality.ONE
        assert registry.association(Post, "author").cardinality is Cardinality.ONE
        assert registry.association(Post, "comments").cardinality is Cardinality.MANY
        assert registry.association(Post, "commenters").cardinality is Cardinality.MANY


class TestNotLoaded:
    def test_singleton(self) -> None:
        assert NotLoaded() is NOT_LOADED

    def test_repr(self) -> None:
        assert repr(NOT_LOADED) == "<NotLoaded>"

    def test_is_loaded(self) -> None:
        assert is_loaded(NOT_LOADED) is False
        assert is_loaded(None) is True
        assert is_loaded([]) is True

    def test_default_relation_fields(self) -> None:
        assert Post().comments is NOT_LOADED
