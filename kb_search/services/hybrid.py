"""
Hybrid (semantic + keyword) scoring.
"""

from __future__ import annotations
from typing import Callable, List, Optional, Sequence

from kb_search.models.results import RankedResult, Weights

KEYWORD_SCORE_CAP = 5.0


def tokenize(query: str) -> List[str]:
    return query.lower().split()


def keyword_score(text: str, keywords: Sequence[str]) -> float:
    """
    Average literal occurrence count of the keywords in `text`,
    capped at KEYWORD_SCORE_CAP and scaled to [0, 1].
    """
    if not keywords:
        return 0.0
    haystack = text.lower()
    average = sum(haystack.count(k) for k in keywords) / len(keywords)
    return min(average / KEYWORD_SCORE_CAP, 1.0)


def blend(similarity: float, keyword: float, semantic_weight: float) -> float:
    return similarity * semantic_weight + keyword * (1 - semantic_weight)


def weights(semantic_weight: float) -> Weights:
    # 1 - 0.7 is 0.30000000000000004 in floating point
    return Weights(semantic=semantic_weight, keyword=round(1 - semantic_weight, 10))


def rerank(
    results: Sequence[RankedResult],
    query: str,
    semantic_weight: float,
    row: Optional[Callable[[str], int]] = None,
) -> List[RankedResult]:
    """
    Attach keyword/hybrid scores and re-sort by the blended score.
    Equal scores are ordered by `row(id)` (collection order) when given,
    otherwise they keep their input order.
    """
    keywords = tokenize(query)
    scored: List[RankedResult] = []
    for r in results:
        kw = keyword_score(r.text, keywords)
        hybrid = blend(r.similarity, kw, semantic_weight)
        scored.append(r.model_copy(update={"keyword_score": kw, "hybrid_score": hybrid, "score": hybrid}))
    scored.sort(key=lambda r: (-r.score, row(r.id) if row else 0))
    return scored
