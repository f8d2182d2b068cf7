from __future__ import annotations
from typing import List, Optional
import httpx

from kb_search.core.config import settings
from kb_search.core.errors import ProviderError
from .base import EmbeddingProvider

COHERE_EMBED_URL = "https://api.cohere.ai/v1/embed"


class CohereProvider(EmbeddingProvider):
    """Cohere embed API over httpx. One request per batch."""

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        timeout: float | None = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(model_name or settings.COHERE_MODEL)
        self.api_key = api_key or settings.COHERE_API_KEY
        self.timeout = timeout if timeout is not None else settings.COHERE_TIMEOUT
        self._client = client

    @property
    def identifier(self) -> str:
        return f"cohere/{self.model_name}"

    async def _load(self) -> None:
        if not self.api_key:
            raise ProviderError("COHERE_API_KEY not configured")
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

    async def _embed(self, texts: List[str], *, query: bool) -> List[List[float]]:
        assert self._client is not None
        try:
            r = await self._client.post(
                COHERE_EMBED_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "texts": texts,
                    "model": self.model_name,
                    # v3 models require the input type
                    "input_type": "search_query" if query else "search_document",
                },
            )
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise ProviderError(f"Cohere embed request failed: {e}") from e
        return r.json()["embeddings"]

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
