"""Planner configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field


class GraphConfig(BaseModel):
    """Tunables shared by the through composer and the preloader."""

    max_through_depth: int = Field(default=32, ge=1)
    order_many_preloads: bool = True
    through_distinct: bool = True
