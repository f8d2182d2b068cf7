from __future__ import annotations
from typing import Dict, List, Mapping, Optional, Sequence
import asyncio
import logging

from kb_search.core.errors import ArgumentError
from kb_search.models.results import RankedResult, SearchResponse, UnifiedSearchResponse
from kb_search.services import hybrid
from kb_search.services.source_adapter import (
    DEFAULT_LIMIT,
    DEFAULT_SEMANTIC_WEIGHT,
    SourceAdapter,
    validate_limit,
    validate_query,
    validate_weight,
)

logger = logging.getLogger(__name__)

SEARCH_MODES = ("semantic", "hybrid")


class UnifiedSearch:
    """
    Fans one query out to several sources concurrently and merges the results.
    Every source call is awaited to completion; a failing source is reported in
    `errors` and contributes nothing, the others are still returned.
    """

    def __init__(self, adapters: Mapping[str, SourceAdapter]) -> None:
        self.adapters = dict(adapters)

    def _resolve_sources(self, sources: Optional[Sequence[str]]) -> List[str]:
        if sources is None:
            return list(self.adapters)
        if isinstance(sources, str) or not sources:
            raise ArgumentError("sources must be a non-empty list of source names")
        unknown = [s for s in sources if s not in self.adapters]
        if unknown:
            raise ArgumentError(f"unknown source(s) {unknown}; available: {list(self.adapters)}")
        return list(dict.fromkeys(sources))

    async def search(
        self,
        query: str,
        sources: Optional[Sequence[str]] = None,
        limit: int = DEFAULT_LIMIT,
        mode: str = "semantic",
        semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT,
    ) -> UnifiedSearchResponse:
        query = validate_query(query)
        limit = validate_limit(limit)
        if mode not in SEARCH_MODES:
            raise ArgumentError(f"mode must be one of {SEARCH_MODES}")
        if mode == "hybrid":
            semantic_weight = validate_weight(semantic_weight)
        names = self._resolve_sources(sources)
        logger.info(f"Unified {mode} search across sources: {', '.join(names)}")

        calls = []
        for name in names:
            adapter = self.adapters[name]
            if mode == "hybrid":
                calls.append(adapter.hybrid_search(query, limit=limit, semantic_weight=semantic_weight))
            else:
                calls.append(adapter.semantic_search(query, limit=limit))
        outcomes = await asyncio.gather(*calls, return_exceptions=True)

        merged: List[RankedResult] = []
        source_counts: Dict[str, int] = {}
        errors: Dict[str, str] = {}
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, SearchResponse):
                source_counts[name] = outcome.total_results
                merged.extend(r.model_copy(update={"source": name}) for r in outcome.results)
            elif isinstance(outcome, Exception):
                logger.warning(f"[{name}] search failed: {outcome}")
                source_counts[name] = 0
                errors[name] = str(outcome)
            else:
                raise outcome

        # stable: equal scores keep source order, then per-source rank
        merged.sort(key=lambda r: r.score, reverse=True)
        top = merged[:limit]
        logger.info(f"Found {len(merged)} total results, returning top {len(top)}")

        return UnifiedSearchResponse(
            query=query,
            total_results=len(top),
            results=top,
            search_type=f"unified_{mode}",
            sources_searched=names,
            source_counts=source_counts,
            errors=errors,
            weights=hybrid.weights(semantic_weight) if mode == "hybrid" else None,
        )
