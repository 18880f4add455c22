"""Caller-facing option records for the analytics entry points.

Algorithm tags are kept as plain strings here and resolved by the engine, so
an unknown tag surfaces as ``UnknownAlgorithmError`` rather than a validation
error.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class CentralityOptions(BaseModel):
    algorithms: List[str] = Field(
        default_factory=lambda: ["betweenness", "closeness", "pagerank", "degree"]
    )
    normalize: bool = True
    parallel: bool = Field(default=False, description="Accepted for compatibility; measures run serially.")
    cache_results: bool = True


class CommunityOptions(BaseModel):
    resolution: float = Field(gt=0.0, default=1.0)
    iterations: int = Field(ge=1, default=100)
    random_seed: Optional[int] = 42
    hierarchical: bool = False


class SimilarityOptions(BaseModel):
    max_distance: int = Field(ge=1, default=1, description="Neighbourhood radius for structural similarity.")
    decay: float = Field(gt=0.0, le=1.0, default=0.5)
    semantic_keyword_weight: float = Field(ge=0.0, le=1.0, default=0.7)
