from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional

from .record import Scalar


class RankedResult(BaseModel):
    """
    A record projected with its scores.
    `score` is always the active ranking score: cosine similarity for semantic
    search, the blended score for hybrid search.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    score: float
    similarity: float
    keyword_score: Optional[float] = None
    hybrid_score: Optional[float] = None
    source: Optional[str] = None
    metadata: Dict[str, Scalar] = Field(default_factory=dict)


class Weights(BaseModel):
    semantic: float
    keyword: float


class SearchResponse(BaseModel):
    """Envelope returned by a single source."""
    query: str
    total_results: int
    results: List[RankedResult]
    search_type: str  # "semantic" | "hybrid"
    filters: Dict[str, str] = Field(default_factory=dict)
    weights: Optional[Weights] = None


class UnifiedSearchResponse(BaseModel):
    """
    Envelope returned by the aggregator.
    `errors` is keyed by source; a source listed there contributed nothing,
    while a source with count 0 and no error simply had no relevant results.
    """
    query: str
    total_results: int
    results: List[RankedResult]
    search_type: str  # "unified_semantic" | "unified_hybrid"
    sources_searched: List[str]
    source_counts: Dict[str, int]
    errors: Dict[str, str] = Field(default_factory=dict)
    weights: Optional[Weights] = None


class SnapshotDescriptor(BaseModel):
    """Sibling file written next to every snapshot."""
    indexed_at: datetime
    total_vectors: int
    embedding_model: str
    dimensions: int
