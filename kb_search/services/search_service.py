from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence
import asyncio
import logging

from kb_search.adapters.embedding_providers import EmbeddingProvider, build_embedding_provider
from kb_search.core.config import Settings, settings
from kb_search.core.errors import ArgumentError, NotFoundError
from kb_search.ingestion.pipeline import DocumentLike, IndexingPipeline, ProgressCallback
from kb_search.models.results import SearchResponse, SnapshotDescriptor, UnifiedSearchResponse
from kb_search.repositories.snapshot_repo import SnapshotRepo
from kb_search.services.aggregator import UnifiedSearch
from kb_search.services.source_adapter import SourceAdapter
from kb_search.services.sources import SOURCE_ADAPTERS

logger = logging.getLogger(__name__)


class SearchService:
    """
    Wires one shared embedding provider and snapshot repo into the source
    adapters, the unified aggregator and the indexing pipeline.
    """
    _singleton: "SearchService | None" = None

    def __init__(
        self,
        provider: Optional[EmbeddingProvider] = None,
        repo: Optional[SnapshotRepo] = None,
        config: Optional[Settings] = None,
        snapshot_paths: Optional[Mapping[str, Path | str]] = None,
    ) -> None:
        self.config = config or settings
        self.provider = provider or build_embedding_provider(self.config)
        self.repo = repo or SnapshotRepo()
        paths = dict(snapshot_paths or {})
        self.adapters: Dict[str, SourceAdapter] = {
            name: cls(self.provider, paths.get(name) or self.config.vector_db_path(name), self.repo)
            for name, cls in SOURCE_ADAPTERS.items()
        }
        self.unified = UnifiedSearch(self.adapters)

    @classmethod
    def instance(cls) -> "SearchService":
        if not cls._singleton:
            cls._singleton = cls()
        return cls._singleton

    def adapter(self, source: str) -> SourceAdapter:
        adapter = self.adapters.get(source)
        if adapter is None:
            raise ArgumentError(f"unknown source {source!r}; available: {list(self.adapters)}")
        return adapter

    def sources(self) -> List[Dict[str, Any]]:
        return [a.describe() for a in self.adapters.values()]

    # --------------- search ---------------
    async def semantic_search(
        self,
        source: str,
        query: str,
        filters: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> SearchResponse:
        return await self.adapter(source).semantic_search(
            query, filters=filters, limit=limit if limit is not None else self.config.DEFAULT_LIMIT
        )

    async def hybrid_search(
        self,
        source: str,
        query: str,
        filters: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
        semantic_weight: Optional[float] = None,
    ) -> SearchResponse:
        return await self.adapter(source).hybrid_search(
            query,
            filters=filters,
            limit=limit if limit is not None else self.config.DEFAULT_LIMIT,
            semantic_weight=semantic_weight if semantic_weight is not None else self.config.DEFAULT_SEMANTIC_WEIGHT,
        )

    async def unified_search(
        self,
        query: str,
        sources: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        mode: str = "semantic",
        semantic_weight: Optional[float] = None,
    ) -> UnifiedSearchResponse:
        return await self.unified.search(
            query,
            sources=sources,
            limit=limit if limit is not None else self.config.DEFAULT_LIMIT,
            mode=mode,
            semantic_weight=semantic_weight if semantic_weight is not None else self.config.DEFAULT_SEMANTIC_WEIGHT,
        )

    # --------------- indexing ---------------
    def pipeline(self) -> IndexingPipeline:
        return IndexingPipeline(
            self.provider,
            chunk_size=self.config.CHUNK_SIZE,
            chunk_overlap=self.config.CHUNK_OVERLAP,
            separator=self.config.CHUNK_SEPARATOR,
            batch_size=self.config.INDEX_BATCH_SIZE,
        )

    async def index_source(
        self,
        source: str,
        documents: Sequence[DocumentLike],
        *,
        incremental: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SnapshotDescriptor:
        """
        Build (or extend) the snapshot of one source and save it.
        Nothing is written unless every batch was embedded successfully.
        """
        adapter = self.adapter(source)
        pipeline = self.pipeline()
        options = {"name": source, "on_progress": on_progress, "schema": adapter.metadata_schema}

        existing = None
        if incremental:
            try:
                existing = await asyncio.to_thread(self.repo.load, adapter.snapshot_path, source)
            except NotFoundError:
                logger.info(f"[{source}] No existing snapshot, building a new one")

        if existing is not None:
            collection = await pipeline.incremental_index(existing, documents, **options)
        else:
            collection = await pipeline.index_documents(documents, **options)

        return await asyncio.to_thread(
            self.repo.save, collection, adapter.snapshot_path, self.provider.identifier
        )
