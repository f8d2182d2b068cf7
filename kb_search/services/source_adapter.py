from __future__ import annotations
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Type
import asyncio
import logging

from kb_search.adapters.embedding_providers.base import EmbeddingProvider
from kb_search.concurrency.once import AsyncOnce
from kb_search.core.errors import ArgumentError
from kb_search.indexing.base import Collection
from kb_search.indexing.brute_force import rank
from kb_search.models.metadata import ChunkMetadata
from kb_search.models.results import RankedResult, SearchResponse
from kb_search.repositories.snapshot_repo import SnapshotRepo
from kb_search.services import hybrid
from kb_search.services.filters import FilterSpec, apply_predicates, build_predicates, describe_filters

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
DEFAULT_SEMANTIC_WEIGHT = 0.7


class AdapterState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


def validate_query(query: Any) -> str:
    if not isinstance(query, str) or not query.strip():
        raise ArgumentError("query is required")
    return query


def validate_limit(limit: Any) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ArgumentError(f"limit must be a positive integer, got {limit!r}")
    return limit


def validate_weight(weight: Any) -> float:
    if isinstance(weight, bool) or not isinstance(weight, (int, float)) or not 0.0 <= weight <= 1.0:
        raise ArgumentError(f"semantic_weight must be a number in [0, 1], got {weight!r}")
    return float(weight)


class SourceAdapter:
    """
    Binds one collection snapshot and its filter vocabulary to the similarity engine.

    The collection is loaded on first use and cached for the process lifetime:
    UNINITIALIZED -> LOADING -> READY. READY is terminal; a new snapshot is only
    picked up by a new process. A failed load goes back to UNINITIALIZED.
    """

    name: ClassVar[str] = "source"
    label: ClassVar[str] = "Source"
    index_command: ClassVar[str] = "run indexing first"
    filter_specs: ClassVar[Tuple[FilterSpec, ...]] = ()
    result_fields: ClassVar[Tuple[str, ...]] = ()
    metadata_schema: ClassVar[Optional[Type[ChunkMetadata]]] = None

    def __init__(
        self,
        provider: EmbeddingProvider,
        snapshot_path: Path | str,
        repo: Optional[SnapshotRepo] = None,
    ) -> None:
        self.provider = provider
        self.snapshot_path = Path(snapshot_path)
        self.repo = repo or SnapshotRepo()
        self.state = AdapterState.UNINITIALIZED
        self._collection: AsyncOnce[Collection] = AsyncOnce(self._load_collection)

    async def _load_collection(self) -> Collection:
        self.state = AdapterState.LOADING
        logger.info(f"[{self.name}] Loading vectors from: {self.snapshot_path}")
        try:
            collection = await asyncio.to_thread(
                self.repo.load, self.snapshot_path, self.name, self.index_command
            )
        except BaseException:
            self.state = AdapterState.UNINITIALIZED
            raise
        self.state = AdapterState.READY
        return collection

    async def collection(self) -> Collection:
        return await self._collection.get()

    def _project(self, result: RankedResult) -> RankedResult:
        metadata = {f: result.metadata.get(f) for f in self.result_fields}
        return result.model_copy(update={"metadata": metadata})

    async def semantic_search(
        self,
        query: str,
        filters: Optional[Mapping[str, Any]] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> SearchResponse:
        query = validate_query(query)
        limit = validate_limit(limit)
        predicates = build_predicates(self.filter_specs, filters)
        logger.info(f"[{self.name}] Semantic search for: {query}")

        collection = await self.collection()
        query_vector = await self.provider.embed_query(query)

        # over-fetch so filtering still leaves `limit` results
        candidates = rank(query_vector, collection, limit * 2)
        results = [self._project(r) for r in apply_predicates(candidates, predicates)[:limit]]

        logger.info(f"[{self.name}] Found {len(results)} results")
        return SearchResponse(
            query=query,
            total_results=len(results),
            results=results,
            search_type="semantic",
            filters=describe_filters(self.filter_specs, filters),
        )

    async def hybrid_search(
        self,
        query: str,
        filters: Optional[Mapping[str, Any]] = None,
        limit: int = DEFAULT_LIMIT,
        semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT,
    ) -> SearchResponse:
        query = validate_query(query)
        limit = validate_limit(limit)
        semantic_weight = validate_weight(semantic_weight)
        logger.info(f"[{self.name}] Hybrid search for: {query}")

        semantic = await self.semantic_search(query, filters=filters, limit=limit * 2)
        collection = await self.collection()
        results = hybrid.rerank(semantic.results, query, semantic_weight, row=collection.row)[:limit]

        logger.info(f"[{self.name}] Hybrid search complete: {len(results)} results")
        return SearchResponse(
            query=query,
            total_results=len(results),
            results=results,
            search_type="hybrid",
            filters=semantic.filters,
            weights=hybrid.weights(semantic_weight),
        )

    @classmethod
    def describe(cls) -> Dict[str, Any]:
        """Filter vocabulary, as exposed by GET /sources."""
        return {
            "name": cls.name,
            "label": cls.label,
            "filters": [
                {"param": s.param, "field": s.field, "comparator": s.comparator.value, "description": s.description}
                for s in cls.filter_specs
            ],
            "result_fields": list(cls.result_fields),
        }

