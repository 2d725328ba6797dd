"""
Example 01: Preloading Associations

This example declares a small blog schema and preloads direct, nested and
through associations from an in-memory "database" of dataclass rows.
"""

from dataclasses import dataclass
from typing import Any, Optional

from row_graph import NOT_LOADED, In, Preloader, Query, SchemaRegistry, schema


@dataclass
class Author:
    """Author entity"""
    id: Optional[int] = None
    name: Optional[str] = None
    books: Any = NOT_LOADED
    reviewers: Any = NOT_LOADED


@dataclass
class Book:
    """Book entity"""
    id: Optional[int] = None
    title: Optional[str] = None
    author_id: Optional[int] = None
    author: Any = NOT_LOADED
    reviews: Any = NOT_LOADED


@dataclass
class Review:
    """Review entity"""
    id: Optional[int] = None
    stars: Optional[int] = None
    book_id: Optional[int] = None
    reviewer_id: Optional[int] = None
    reviewer: Any = NOT_LOADED


class ListExecutor:
    """Runs single-source queries with IN filters against Python lists."""

    def __init__(self, tables: dict[str, list[Any]]):
        self.tables = tables

    def all(self, query: Query) -> list[Any]:
        rows = list(self.tables[query.source])
        for predicate in query.wheres:
            if isinstance(predicate, In):
                rows = [r for r in rows if getattr(r, predicate.field.name) in predicate.values]
        for ref, direction in reversed(query.order_bys):
            rows.sort(key=lambda r: getattr(r, ref.name), reverse=direction == "desc")
        print(f"   query: {query.source} {[str(w) for w in query.wheres]}")
        return rows


def main():
    registry = SchemaRegistry([
        schema(Author, source="authors")
        .has_many("books", Book)
        .has_many_through("reviewers", ["books", "reviews", "reviewer"])
        .build(),
        schema(Book, source="books")
        .belongs_to("author", Author)
        .has_many("reviews", Review)
        .build(),
        schema(Review, source="reviews")
        .belongs_to("reviewer", Author)
        .build(),
    ])

    executor = ListExecutor({
        "authors": [Author(id=1, name="Ursula"), Author(id=2, name="Iain")],
        "books": [
            Book(id=10, title="The Dispossessed", author_id=1),
            Book(id=11, title="Excession", author_id=2),
        ],
        "reviews": [
            Review(id=100, stars=5, book_id=10, reviewer_id=2),
            Review(id=101, stars=4, book_id=11, reviewer_id=1),
            Review(id=102, stars=5, book_id=11, reviewer_id=2),
        ],
    })
    preloader = Preloader(registry, executor)
    authors = executor.tables["authors"]

    print("=== Preloading ===\n")

    # One query per association, whatever the number of owners
    print("1. Books of every author:")
    loaded = preloader.preload(authors, "books")
    for author in loaded:
        print(f"   {author.name}: {[b.title for b in author.books]}")
    print()

    # Nested preloads run against the rows fetched one level up
    print("2. Books with their reviews and reviewers:")
    loaded = preloader.preload(authors, {"books": {"reviews": "reviewer"}})
    for author in loaded:
        for book in author.books:
            names = [r.reviewer.name for r in book.reviews]
            print(f"   {book.title}: reviewed by {names}")
    print()

    # Through associations load every step on the way
    print("3. Everyone who reviewed an author's books:")
    loaded = preloader.preload(authors, "reviewers")
    for author in loaded:
        print(f"   {author.name}: {sorted(r.name for r in author.reviewers)}")
    print()

    # The input rows are never mutated
    print(f"4. Original rows untouched: {authors[0].books is NOT_LOADED}")


if __name__ == "__main__":
    main()
