"""Preload planner - normalize, expand and execute association preloads."""

from __future__ import annotations

from row_graph.preload.expander import AssocInfo, PreloadEntry, ThroughInfo, expand
from row_graph.preload.normalizer import PreloadNode, Shape, merge_nodes, normalize
from row_graph.preload.preloader import Preloader

__all__ = [
    "normalize",
    "merge_nodes",
    "PreloadNode",
    "Shape",
    "expand",
    "PreloadEntry",
    "AssocInfo",
    "ThroughInfo",
    "Preloader",
]
