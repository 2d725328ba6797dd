"""Repository layer - DDD repository pattern."""

from __future__ import annotations

from row_graph.repository.base import Repository

__all__ = [
    "Repository",
]
