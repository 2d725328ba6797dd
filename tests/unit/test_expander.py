"""Unit tests for the preload expander."""

from __future__ import annotations

import pytest

from graph_models import Comment, Post, User
from row_graph.core.exceptions import PreloadConflictError, UnknownAssociationError
from row_graph.core.registry import SchemaRegistry
from row_graph.preload.expander import AssocInfo, ThroughInfo, expand
from row_graph.preload.normalizer import normalize
from row_graph.query.query import Query


def _names(entries) -> list:
    return [
        (e.name, _names(e.nested)) if e.nested else e.name
        for e in entries
    ]


class TestExpand:
    def test_direct_entries(self, registry: SchemaRegistry) -> None:
        entries = expand(registry, Post, normalize(["comments", "author"]))
        assert [e.name for e in entries] == ["comments", "author"]
        comments = entries[0]
        assert isinstance(comments.info, AssocInfo)
        assert comments.info.descriptor is registry.association(Post, "comments")
        assert comments.info.join_key == "post_id"
        assert entries[1].info.join_key == "id"

    def test_nested_expands_against_related_type(self, registry: SchemaRegistry) -> None:
        entries = expand(registry, Post, normalize({"comments": {"author": "posts"}}))
        assert _names(entries) == [("comments", [("author", ["posts"])])]
        author = entries[0].nested[0]
        assert author.info.descriptor.owner is Comment

    def test_unknown_association(self, registry: SchemaRegistry) -> None:
        with pytest.raises(UnknownAssociationError, match="schema Post does not have association 'likes'"):
            expand(registry, Post, normalize("likes"))

    def test_unknown_nested_association(self, registry: SchemaRegistry) -> None:
        with pytest.raises(UnknownAssociationError, match="schema Comment does not have association 'likes'"):
            expand(registry, Post, normalize({"comments": "likes"}))

    def test_custom_query_kept(self, registry: SchemaRegistry) -> None:
        query = Query.of(Comment, "comments").limit(2)
        (entry,) = expand(registry, Post, normalize([("comments", query)]))
        assert entry.query == query
        assert entry.nested == ()

    def test_through_expands_chain_then_marker(self, registry: SchemaRegistry) -> None:
        entries = expand(registry, Post, normalize("commenters"))
        assert _names(entries) == [("comments", ["author"]), "commenters"]
        marker = entries[1]
        assert isinstance(marker.info, ThroughInfo)
        assert marker.info.path == ("comments", "author")
        assert marker.nested == ()
        assert marker.is_through

    def test_through_nested_preloads_attach_to_terminal_step(self, registry: SchemaRegistry) -> None:
        entries = expand(registry, Post, normalize({"commenters": "posts"}))
        assert _names(entries) == [("comments", [("author", ["posts"])]), "commenters"]

    def test_nested_through(self, registry: SchemaRegistry) -> None:
        entries = expand(registry, User, normalize("post_commenters"))
        assert _names(entries) == [
            ("posts", [("comments", ["author"]), "commenters"]),
            "post_commenters",
        ]

    def test_through_merges_with_explicit_step(self, registry: SchemaRegistry) -> None:
        entries = expand(registry, Post, normalize([{"comments": "post"}, "commenters"]))
        assert _names(entries) == [("comments", ["post", "author"]), "commenters"]

    def test_duplicate_nested_entries_are_concatenated(self, registry: SchemaRegistry) -> None:
        first = expand(registry, Post, normalize({"comments": "author"}))
        entries = expand(registry, Post, normalize({"comments": "author"}), first)
        assert _names(entries) == [("comments", ["author", "author"])]

    def test_accumulator_keeps_first_seen_order(self, registry: SchemaRegistry) -> None:
        first = expand(registry, Post, normalize(["author", "comments"]))
        entries = expand(registry, Post, normalize(["permalink", "author"]), first)
        assert [e.name for e in entries] == ["author", "comments", "permalink"]

    def test_accumulated_query_conflicts_with_nesting(self, registry: SchemaRegistry) -> None:
        first = expand(registry, Post, normalize([("comments", [])]))
        with pytest.raises(PreloadConflictError, match="cannot preload 'comments'"):
            expand(registry, Post, normalize([("comments", Query.of(Comment, "comments"))]), first)

    def test_accumulated_equal_queries_merge(self, registry: SchemaRegistry) -> None:
        query = Query.of(Comment, "comments").limit(1)
        first = expand(registry, Post, normalize([("comments", query)]))
        (entry,) = expand(registry, Post, normalize([("comments", query)]), first)
        assert entry.query == query

    def test_through_reuses_custom_query_of_first_step(self, registry: SchemaRegistry) -> None:
        query = Query.of(Comment, "comments").limit(10)
        entries = expand(registry, User, normalize([("comments", query), "commented_posts"]))
        assert _names(entries) == [("comments", ["post"]), "commented_posts"]
        assert entries[0].query == query

    def test_custom_query_after_through_is_kept(self, registry: SchemaRegistry) -> None:
        query = Query.of(Comment, "comments").limit(10)
        entries = expand(registry, User, normalize(["commented_posts", ("comments", query)]))
        assert _names(entries) == [("comments", ["post"]), "commented_posts"]
        assert entries[0].query == query

    def test_custom_query_still_conflicts_with_caller_nesting(self, registry: SchemaRegistry) -> None:
        query = Query.of(Comment, "comments")
        first = expand(registry, User, normalize(["commented_posts", ("comments", query)]))
        with pytest.raises(PreloadConflictError):
            expand(registry, User, normalize({"comments": "author"}), first)
