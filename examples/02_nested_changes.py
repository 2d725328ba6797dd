"""
Example 02: Nested Changes

This example casts form params into a book and its chapters, shows how the
on_replace policy handles chapters left out of the form, and applies the
resulting changeset tree.
"""

from dataclasses import dataclass
from typing import Any, Optional

from row_graph import (
    NOT_LOADED,
    OnReplace,
    SchemaRegistry,
    apply_changes,
    cast,
    cast_assoc,
    schema,
    traverse_errors,
)


@dataclass
class Chapter:
    """Chapter entity"""
    id: Optional[int] = None
    title: Optional[str] = None
    book_id: Optional[int] = None

    @staticmethod
    def changeset(chapter, params):
        return cast(chapter, params, required=["title"])


@dataclass
class Book:
    """Book entity"""
    id: Optional[int] = None
    title: Optional[str] = None
    chapters: Any = NOT_LOADED


def main():
    registry = SchemaRegistry([
        schema(Book, source="books")
        .has_many("chapters", Chapter, on_replace=OnReplace.DELETE)
        .build(),
        schema(Chapter, source="chapters").on_cast("changeset").build(),
    ])

    book = Book(
        id=1,
        title="Draft",
        chapters=[Chapter(id=1, title="Intro", book_id=1), Chapter(id=2, title="Middle", book_id=1)],
    )

    print("=== Nested Changes ===\n")

    # Params as an HTML form would send them
    params = {
        "title": "Final",
        "chapters": {
            "0": {"id": "1", "title": "Introduction"},
            "1": {"title": "Epilogue"},
        },
    }
    cs = cast(book, params, optional=["title"])
    cs = cast_assoc(cs, "chapters", None, registry)

    print("1. Chapter changesets:")
    for child in cs.changes["chapters"]:
        print(f"   {child.action.value:<6} id={child.data.id} changes={child.changes}")
    print()

    print("2. Applied:")
    updated = apply_changes(cs)
    print(f"   {updated.title}: {[c.title for c in updated.chapters]}\n")

    # Errors in nested changesets surface on the parent
    print("3. Invalid nested params:")
    cs = cast_assoc(cast(book, {"chapters": [{"id": 1, "title": ""}, {"id": 2}]}), "chapters", None, registry)
    print(f"   valid: {cs.valid}")
    print(f"   errors: {traverse_errors(cs)}")


if __name__ == "__main__":
    main()
