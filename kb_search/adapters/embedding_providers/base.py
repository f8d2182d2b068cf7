"""
Embedding provider interface.

One provider object is shared by the indexing pipeline and every search
adapter. The underlying model/client is loaded on first use, and concurrent
first callers collapse into a single load.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Sequence
import logging

from kb_search.concurrency.once import AsyncOnce
from kb_search.core.errors import ProviderError

logger = logging.getLogger(__name__)


class EmbeddingProvider(ABC):
    """Abstract text -> fixed-length vector conversion."""

    def __init__(self, model_name: str) -> None:
        self.model_name = model_name
        self._ready: AsyncOnce[None] = AsyncOnce(self._initialize)

    @property
    def identifier(self) -> str:
        """Recorded in snapshot descriptors as `embedding_model`."""
        return self.model_name

    @property
    def loaded(self) -> bool:
        return self._ready.done

    @abstractmethod
    async def _load(self) -> None:
        """Load the model or open the client. Called at most once per success."""

    @abstractmethod
    async def _embed(self, texts: List[str], *, query: bool) -> List[List[float]]:
        """Embed a non-empty batch in one provider call."""

    async def _initialize(self) -> None:
        logger.info(f"Loading embedding model: {self.model_name}")
        try:
            await self._load()
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"failed to load embedding model {self.model_name}: {e}") from e
        logger.info(f"✓ Embedding model loaded: {self.model_name}")

    async def initialize(self) -> None:
        await self._ready.get()

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed a batch of document texts with a single provider call."""
        return await self._run(list(texts), query=False)

    async def embed_query(self, text: str) -> List[float]:
        return (await self._run([text], query=True))[0]

    async def _run(self, texts: List[str], *, query: bool) -> List[List[float]]:
        if not texts:
            return []
        await self._ready.get()
        try:
            vectors = await self._embed(texts, query=query)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"embedding generation failed ({self.model_name}): {e}") from e
        if len(vectors) != len(texts):
            raise ProviderError(
                f"provider returned {len(vectors)} embeddings for {len(texts)} texts"
            )
        return [[float(x) for x in v] for v in vectors]

    async def aclose(self) -> None:
        """Release resources. Override if needed."""
