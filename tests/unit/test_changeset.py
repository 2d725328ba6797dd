"""Unit tests for Changeset helpers."""

from __future__ import annotations

import pytest

from graph_models import Comment, Post
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
from row_graph.core.enums import Action
from row_graph.core.exceptions import ArgumentError


class TestChange:
    def test_keeps_only_differing_fields(self) -> None:
        cs = change(Post(id=1, title="a"), {"id": 1, "title": "b"})
        assert cs.changes == {"title": "b"}
        assert cs.valid is True
        assert cs.action is None

    def test_extends_changeset(self) -> None:
        cs = change(change(Post(id=1, title="a"), {"title": "b"}), {"author_id": 3})
        assert cs.changes == {"title": "b", "author_id": 3}

    def test_reverting_drops_change(self) -> None:
        cs = change(change(Post(id=1, title="a"), {"title": "b"}), {"title": "a"})
        assert cs.changes == {}

    def test_get_field_prefers_changes(self) -> None:
        cs = change(Post(id=1, title="a"), {"title": "b"})
        assert cs.get_field("title") == "b"
        assert cs.get_field("id") == 1
        assert cs.get_change("id") is None

    def test_frozen(self) -> None:
        cs = change(Post(id=1))
        with pytest.raises(AttributeError):
            cs.valid = False  # type: ignore[misc]


class TestCast:
    def test_permits_listed_keys(self) -> None:
        cs = cast(Post(), {"title": "hello", "id": 5, "bogus": 1}, optional=["title"])
        assert cs.changes == {"title": "hello"}
        assert cs.params == {"title": "hello", "id": 5, "bogus": 1}

    def test_required_blank(self) -> None:
        cs = cast(Comment(), {"text": "  "}, required=["text"])
        assert cs.valid is False
        assert cs.errors == [("text", "can't be blank")]

    def test_required_present_in_data(self) -> None:
        cs = cast(Comment(text="ok"), {}, required=["text"])
        assert cs.valid is True
        assert cs.required == ["text"]

    def test_rejects_non_mapping(self) -> None:
        with pytest.raises(ArgumentError, match="expected params to be a mapping"):
            cast(Comment(), ["text"], optional=["text"])


class TestActionsAndErrors:
    def test_add_error_invalidates(self) -> None:
        cs = add_error(change(Post()), "title", "is too short")
        assert cs.valid is False
        assert cs.errors == [("title", "is too short")]

    def test_put_change(self) -> None:
        assert put_change(change(Post(title="a")), "title", "b").changes == {"title": "b"}

    def test_put_action(self) -> None:
        assert put_action(change(Post()), Action.DELETE).action is Action.DELETE

    def test_put_new_action_keeps_existing(self) -> None:
        cs = put_action(change(Post()), Action.DELETE)
        assert put_new_action(cs, Action.UPDATE).action is Action.DELETE
        assert put_new_action(change(Post()), Action.UPDATE).action is Action.UPDATE


class TestApplyChanges:
    def test_scalar_fields(self) -> None:
        post = apply_changes(change(Post(id=1, title="a"), {"title": "b"}))
        assert post == Post(id=1, title="b")

    def test_nested_relations_drop_removed_members(self) -> None:
        kept = Changeset(data=Comment(id=1, post_id=1), changes={"text": "x"}, action=Action.UPDATE)
        deleted = Changeset(data=Comment(id=2, post_id=1), action=Action.DELETE, replaced=True)
        detached = Changeset(
            data=Comment(id=3, post_id=1),
            changes={"post_id": None},
            action=Action.UPDATE,
            replaced=True,
        )
        parent = Changeset(data=Post(id=1), changes={"comments": [deleted, detached, kept]})
        post = apply_changes(parent)
        assert post.comments == [Comment(id=1, text="x", post_id=1)]


class TestTraverseErrors:
    def test_nested(self) -> None:
        child = add_error(change(Comment()), "text", "can't be blank")
        parent = add_error(
            Changeset(data=Post(), changes={"comments": [change(Comment()), child]}),
            "title",
            "is invalid",
        )
        assert traverse_errors(parent) == {
            "title": ["is invalid"],
            "comments": [{}, {"text": ["can't be blank"]}],
        }
