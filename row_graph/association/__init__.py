"""Association layer - filter queries, join chains and through expansion."""

from __future__ import annotations

from row_graph.association.helpers import assoc, build
from row_graph.association.resolver import filter_query, join_chain, joins_query
from row_graph.association.through import expand_path

__all__ = [
    "filter_query",
    "join_chain",
    "joins_query",
    "expand_path",
    "assoc",
    "build",
]
