from __future__ import annotations
from typing import List, Sequence, Tuple, Union
import math
import numpy as np

from kb_search.core.errors import ArgumentError
from kb_search.models.results import RankedResult
from .base import Collection, Index

Vector = Union[Sequence[float], np.ndarray]


def _as_vector(v: Vector) -> np.ndarray:
    return np.asarray(v, dtype=float).reshape(-1)


def _clamp(score: float) -> float:
    return max(-1.0, min(1.0, score))


def cosine_similarity(a: Vector, b: Vector) -> float:
    """
    Cosine similarity of two equal-length vectors.
    Zero-magnitude input yields 0.0; a length mismatch raises ArgumentError.
    """
    va, vb = _as_vector(a), _as_vector(b)
    if va.shape[0] != vb.shape[0]:
        raise ArgumentError(f"vector length mismatch: {va.shape[0]} != {vb.shape[0]}")

    norm_a = float(va @ va)
    norm_b = float(vb @ vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    # sqrt(|a|^2 * |b|^2) keeps cos(v, v) at exactly 1.0
    return _clamp(float(va @ vb) / math.sqrt(norm_a * norm_b))


class BruteForceIndex(Index):
    """
    Exact cosine similarity scan using NumPy.
    Build  : O(ND)   (row norms)
    Search : O(ND)   (one matrix-vector product)
    Space  : O(N)    (shares the collection's read-only matrix)
    No index structure: practical up to the low hundreds of thousands of rows.
    """

    def __init__(self, collection: Collection) -> None:
        self.collection = collection
        self._vecs = collection.matrix
        self._dim = collection.dimension
        self._sq_norms = np.einsum("ij,ij->i", self._vecs, self._vecs) if len(collection) else np.zeros(0)

    def search(self, query: np.ndarray, k: int) -> List[Tuple[int, float]]:
        if k <= 0 or len(self.collection) == 0:
            return []
        q = _as_vector(query)
        if q.shape[0] != self._dim:
            raise ArgumentError(f"query dim {q.shape[0]} != collection dim {self._dim}")

        q_sq = float(q @ q)
        if q_sq == 0.0:
            scores = np.zeros(len(self.collection))
        else:
            denom = np.sqrt(self._sq_norms * q_sq)
            scores = np.divide(self._vecs @ q, denom, out=np.zeros(len(self.collection)), where=denom > 0)
            scores = np.clip(scores, -1.0, 1.0)

        # stable sort keeps collection order among equal scores
        order = np.argsort(-scores, kind="stable")[:k]
        return [(int(i), float(scores[i])) for i in order]


def rank(query_vector: Vector, collection: Collection, limit: int) -> List[RankedResult]:
    """Top-`limit` records of `collection` by cosine similarity, best first."""
    hits = BruteForceIndex(collection).search(_as_vector(query_vector), limit)
    ranked: List[RankedResult] = []
    for row, score in hits:
        record = collection.records[row]
        ranked.append(
            RankedResult(
                id=record.id,
                text=record.text,
                score=score,
                similarity=score,
                metadata={k: v for k, v in record.metadata.items() if k != "text"},
            )
        )
    return ranked
