from __future__ import annotations
from typing import Iterator, List, Protocol, Sequence, Tuple
import numpy as np

from kb_search.core.errors import ArgumentError
from kb_search.models.record import VectorRecord


class Collection:
    """
    A named, ordered set of VectorRecords sharing one embedding dimension.
    The embedding matrix is built once and marked read-only, so a cached
    collection can be shared by concurrent queries without locking.
    """

    def __init__(self, name: str, records: Sequence[VectorRecord]) -> None:
        self.name = name
        self.records: Tuple[VectorRecord, ...] = tuple(records)

        dims = {r.dimension for r in self.records}
        if len(dims) > 1:
            raise ArgumentError(
                f"collection '{name}' mixes embedding dimensions {sorted(dims)}"
            )
        self.dimension: int = dims.pop() if dims else 0

        matrix = np.array([r.embedding for r in self.records], dtype=float)
        if not self.records:
            matrix = np.zeros((0, 0), dtype=float)
        matrix.setflags(write=False)
        self._matrix = matrix
        self._rows = {r.id: i for i, r in enumerate(self.records)}

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix

    @property
    def ids(self) -> List[str]:
        return [r.id for r in self.records]

    def row(self, record_id: str) -> int:
        """Position of a record in collection order."""
        return self._rows[record_id]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[VectorRecord]:
        return iter(self.records)

    def __repr__(self) -> str:
        return f"Collection(name={self.name!r}, size={len(self)}, dimension={self.dimension})"


class Index(Protocol):
    """
    Interface for vector indexes over one collection.
    Implementations return top-k (row_index, score) pairs, best first.
    """
    def search(self, query: np.ndarray, k: int) -> List[Tuple[int, float]]:
        ...
