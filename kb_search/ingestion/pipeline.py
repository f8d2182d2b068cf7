"""
Indexing pipeline: chunk documents, embed them in batches, build a collection.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type, Union

from pydantic import ValidationError

from kb_search.adapters.embedding_providers.base import EmbeddingProvider
from kb_search.core.config import settings
from kb_search.core.errors import ArgumentError
from kb_search.indexing.base import Collection
from kb_search.ingestion.chunker import chunk_document
from kb_search.models.document import SourceDocument
from kb_search.models.metadata import ChunkMetadata
from kb_search.models.record import VectorRecord

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Dict[str, int]], None]
DocumentLike = Union[SourceDocument, Mapping[str, Any]]

_POSITIONAL_ID_RE = re.compile(r"^doc_(\d+)_chunk_\d+$")


def _coerce(doc: DocumentLike) -> SourceDocument:
    if isinstance(doc, SourceDocument):
        return doc
    try:
        return SourceDocument.model_validate(doc)
    except ValidationError as e:
        raise ArgumentError(f"invalid document: {e}") from e


def _next_positional_id(collection: Collection) -> int:
    """First free n for unnamed documents (doc_<n>) so appended ids never collide."""
    numbers = [int(m.group(1)) for m in (_POSITIONAL_ID_RE.match(i) for i in collection.ids) if m]
    return max(numbers) + 1 if numbers else 0


class IndexingPipeline:
    """
    Batches raw documents through the chunker and the embedding provider.
    One provider call per batch; a provider error aborts the whole run.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
        separator: str | None = None,
        batch_size: int | None = None,
    ) -> None:
        self.provider = provider
        self.chunk_size = chunk_size if chunk_size is not None else settings.CHUNK_SIZE
        self.chunk_overlap = chunk_overlap if chunk_overlap is not None else settings.CHUNK_OVERLAP
        self.separator = separator or settings.CHUNK_SEPARATOR
        self.batch_size = batch_size if batch_size is not None else settings.INDEX_BATCH_SIZE

    def _metadata(
        self, doc: SourceDocument, text: str, index: int, total: int, schema: Optional[Type[ChunkMetadata]]
    ) -> Dict[str, Any]:
        meta = {**doc.metadata, "text": text, "chunk_index": index, "total_chunks": total}
        if schema is None:
            return meta
        try:
            return schema.model_validate(meta).model_dump(exclude_none=True)
        except ValidationError as e:
            raise ArgumentError(f"metadata for document {doc.id!r} does not match {schema.__name__}: {e}") from e

    async def index_documents(
        self,
        documents: Sequence[DocumentLike],
        *,
        name: str = "collection",
        batch_size: int | None = None,
        on_progress: Optional[ProgressCallback] = None,
        schema: Optional[Type[ChunkMetadata]] = None,
        id_offset: int = 0,
    ) -> Collection:
        batch_size = batch_size if batch_size is not None else self.batch_size
        if batch_size <= 0:
            raise ArgumentError("batch_size must be positive")

        docs = [_coerce(d) for d in documents]
        total = len(docs)
        batches = (total + batch_size - 1) // batch_size
        logger.info(f"Indexing {total} documents into '{name}' ({batches} batches)")
        started = time.time()

        records: List[VectorRecord] = []
        seen: set[str] = set()
        for batch_no, start in enumerate(range(0, total, batch_size), 1):
            batch = docs[start : start + batch_size]
            pending: List[Tuple[str, Dict[str, Any]]] = []

            for offset, doc in enumerate(batch):
                doc_id = doc.id or f"doc_{start + offset + id_offset}"
                chunks = chunk_document(
                    doc.text, size=self.chunk_size, overlap=self.chunk_overlap, separator=self.separator
                )
                for chunk in chunks:
                    record_id = f"{doc_id}_chunk_{chunk.index}"
                    if record_id in seen:
                        raise ArgumentError(f"duplicate record id in one indexing run: {record_id}")
                    seen.add(record_id)
                    pending.append((record_id, self._metadata(doc, chunk.text, chunk.index, chunk.total, schema)))

            logger.info(f"Processing batch {batch_no}/{batches} ({len(batch)} documents, {len(pending)} chunks)")
            embeddings = await self.provider.embed([meta["text"] for _, meta in pending])

            for (record_id, meta), embedding in zip(pending, embeddings):
                try:
                    records.append(VectorRecord(id=record_id, embedding=embedding, metadata=meta))
                except ValidationError as e:
                    raise ArgumentError(f"record {record_id} has non-scalar metadata: {e}") from e

            if on_progress:
                end = start + len(batch)
                on_progress({"current": end, "total": total, "percentage": round(end / total * 100)})

        collection = Collection(name, records)
        logger.info(
            f"✓ Indexing complete: {len(collection)} vectors created in {round(time.time() - started, 2)}s"
        )
        return collection

    async def incremental_index(
        self,
        existing: Collection,
        new_documents: Sequence[DocumentLike],
        **kwargs: Any,
    ) -> Collection:
        """
        Embed only `new_documents` and merge them into `existing`.
        Ids stay unique: an existing record whose id is produced again is replaced,
        the rest keep their order, and new records are appended.
        """
        logger.info(f"Incremental indexing: {len(new_documents)} new documents")
        kwargs.setdefault("name", existing.name)
        kwargs.setdefault("id_offset", _next_positional_id(existing))
        fresh = await self.index_documents(new_documents, **kwargs)

        new_ids = set(fresh.ids)
        kept = [r for r in existing if r.id not in new_ids]
        replaced = len(existing) - len(kept)
        combined = Collection(existing.name, kept + list(fresh.records))
        logger.info(f"Total vectors: {len(combined)} ({replaced} replaced)")
        return combined


__all__ = ["IndexingPipeline", "ProgressCallback"]
