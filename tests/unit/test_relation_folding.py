"""Unit tests for put_assoc / cast_assoc."""

from __future__ import annotations

import pytest

from graph_models import Comment, Permalink, Post, blog_registry
from row_graph.changeset.assoc import cast_assoc, put_assoc
from row_graph.changeset.changeset import add_error, apply_changes, cast, change, traverse_errors
from row_graph.core.enums import Action, OnReplace
from row_graph.core.exceptions import NotLoadedError, ReplaceNotAllowedError, UnknownAssociationError
from row_graph.core.registry import SchemaRegistry


class TestPutAssoc:
    def test_adds_relation_change(self, registry: SchemaRegistry) -> None:
        cs = put_assoc(change(Post(id=1, comments=[])), "comments", [Comment(text="hi")], registry)
        (child,) = cs.changes["comments"]
        assert child.action is Action.INSERT
        assert child.changes == {"text": "hi", "post_id": 1}
        assert cs.valid is True

    def test_unchanged_relation_leaves_no_key(self, registry: SchemaRegistry) -> None:
        current = Comment(id=1, text="a", post_id=1)
        cs = put_assoc(change(Post(id=1, comments=[current])), "comments", [current], registry)
        assert "comments" not in cs.changes

    def test_unchanged_relation_drops_earlier_change(self, registry: SchemaRegistry) -> None:
        current = Comment(id=1, text="a", post_id=1)
        post = Post(id=1, comments=[current])
        cs = put_assoc(change(post), "comments", [current, Comment(text="new")], registry)
        assert len(cs.changes["comments"]) == 2
        with pytest.raises(ReplaceNotAllowedError):
            put_assoc(cs, "comments", [], registry)
        cs = put_assoc(cs, "comments", [current], registry)
        assert "comments" not in cs.changes

    def test_invalid_child_invalidates_parent(self, registry: SchemaRegistry) -> None:
        child = add_error(change(Comment(), {"text": ""}), "text", "can't be blank")
        cs = put_assoc(change(Post(id=1, comments=[])), "comments", [child], registry)
        assert cs.valid is False
        assert traverse_errors(cs) == {"comments": [{"text": ["can't be blank"]}]}

    def test_mark_invalid(self) -> None:
        registry = blog_registry(on_replace=OnReplace.MARK_INVALID)
        post = Post(id=1, comments=[Comment(id=1, post_id=1)])
        cs = put_assoc(change(post), "comments", [], registry)
        assert cs.valid is False
        assert cs.errors == [("comments", "is invalid")]
        assert "comments" not in cs.changes

    def test_invalid_shape(self, registry: SchemaRegistry) -> None:
        cs = put_assoc(change(Post(id=1, permalink=None)), "permalink", "oops", registry)
        assert cs.errors == [("permalink", "is invalid")]

    def test_not_loaded(self, registry: SchemaRegistry) -> None:
        with pytest.raises(NotLoadedError):
            put_assoc(change(Post(id=1)), "comments", [], registry)

    def test_unknown_association(self, registry: SchemaRegistry) -> None:
        with pytest.raises(UnknownAssociationError):
            put_assoc(change(Post(id=1)), "likes", [], registry)

    def test_apply_changes_rebuilds_relation(self) -> None:
        registry = blog_registry(on_replace=OnReplace.DELETE)
        old = Comment(id=1, text="old", post_id=1)
        cs = put_assoc(change(Post(id=1, comments=[old])), "comments", [Comment(text="new")], registry)
        post = apply_changes(cs)
        assert post.comments == [Comment(text="new", post_id=1)]


class TestCastAssoc:
    def test_reads_parent_params(self, registry: SchemaRegistry) -> None:
        params = {"title": "t", "permalink": {"url": "/x"}}
        cs = cast(Post(id=1, permalink=None), params, optional=["title"])
        cs = cast_assoc(cs, "permalink", None, registry)
        assert cs.changes["title"] == "t"
        assert cs.changes["permalink"].changes == {"url": "/x", "post_id": 1}
        assert apply_changes(cs).permalink == Permalink(url="/x", post_id=1)

    def test_explicit_params(self, registry: SchemaRegistry) -> None:
        cs = cast_assoc(
            change(Post(id=1, comments=[])),
            "comments",
            {"comments": [{"text": "a"}, {"text": "b"}]},
            registry,
        )
        assert [c.changes["text"] for c in cs.changes["comments"]] == ["a", "b"]

    def test_missing_key_is_noop(self, registry: SchemaRegistry) -> None:
        cs = change(Post(id=1))
        assert cast_assoc(cs, "comments", {"title": "t"}, registry) is cs

    def test_missing_key_required_and_empty(self, registry: SchemaRegistry) -> None:
        cs = cast_assoc(change(Post(id=1, permalink=None)), "permalink", {}, registry, required=True)
        assert cs.errors == [("permalink", "can't be blank")]
        assert cs.required == ["permalink"]

    def test_missing_key_required_but_loaded(self, registry: SchemaRegistry) -> None:
        post = Post(id=1, permalink=Permalink(id=5, post_id=1))
        cs = cast_assoc(change(post), "permalink", {}, registry, required=True)
        assert cs.valid is True

    def test_required_nil_params(self, registry: SchemaRegistry) -> None:
        cs = cast_assoc(
            change(Post(id=1, permalink=None)),
            "permalink",
            {"permalink": None},
            registry,
            required=True,
        )
        assert cs.errors == [("permalink", "can't be blank")]

    def test_required_removed_member(self) -> None:
        registry = blog_registry(on_replace=OnReplace.DELETE)
        post = Post(id=1, permalink=Permalink(id=5, post_id=1))
        cs = cast_assoc(change(post), "permalink", {"permalink": None}, registry, required=True)
        assert cs.errors == [("permalink", "can't be blank")]

    def test_invalid_params(self, registry: SchemaRegistry) -> None:
        cs = cast_assoc(change(Post(id=1, comments=[])), "comments", {"comments": "oops"}, registry)
        assert cs.errors == [("comments", "is invalid")]
        assert cs.valid is False

    def test_custom_changeset_function(self, registry: SchemaRegistry) -> None:
        def strict(entity, params):
            return cast(entity, params, required=["text"])

        cs = cast_assoc(
            change(Post(id=1, comments=[])),
            "comments",
            {"comments": [{"text": ""}]},
            registry,
            with_=strict,
        )
        assert cs.valid is False
        assert traverse_errors(cs) == {"comments": [{"text": ["can't be blank"]}]}

    def test_not_loaded(self, registry: SchemaRegistry) -> None:
        with pytest.raises(NotLoadedError):
            cast_assoc(change(Post(id=1)), "comments", {"comments": []}, registry)
