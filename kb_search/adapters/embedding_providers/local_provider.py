from __future__ import annotations
from typing import Any, List
import asyncio

from kb_search.core.errors import ProviderError
from .base import EmbeddingProvider


class LocalEmbeddingProvider(EmbeddingProvider):
    """
    Local embedding via sentence-transformers.

    Default model: all-MiniLM-L6-v2 (384 dimensions, mean pooling, unit-normalized).
    Model load and encoding run in a worker thread so the event loop stays free.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2") -> None:
        super().__init__(model_name)
        self._model: Any = None

    async def _load(self) -> None:
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise ProviderError(
                "sentence-transformers is required for LocalEmbeddingProvider. "
                "Install with: pip install 'kb-semantic-search[local]'"
            ) from e
        self._model = await asyncio.to_thread(SentenceTransformer, self.model_name)

    async def _embed(self, texts: List[str], *, query: bool) -> List[List[float]]:
        embeddings = await asyncio.to_thread(
            self._model.encode,
            texts,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return [e.tolist() for e in embeddings]
