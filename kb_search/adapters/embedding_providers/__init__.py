"""
Embedding providers package.
"""

from __future__ import annotations

from kb_search.core.config import Settings, settings as default_settings
from kb_search.core.errors import ArgumentError

from .base import EmbeddingProvider
from .cohere_provider import CohereProvider
from .local_provider import LocalEmbeddingProvider


def build_embedding_provider(config: Settings | None = None) -> EmbeddingProvider:
    """
    Factory: create the provider named by EMBEDDING_PROVIDER.
    Nothing is loaded until the first embed call.
    """
    config = config or default_settings
    backend = config.EMBEDDING_PROVIDER.lower()
    if backend == "local":
        return LocalEmbeddingProvider(config.EMBEDDING_MODEL)
    if backend == "cohere":
        return CohereProvider(
            api_key=config.COHERE_API_KEY,
            model_name=config.COHERE_MODEL,
            timeout=config.COHERE_TIMEOUT,
        )
    raise ArgumentError(
        f"Unknown embedding provider: {config.EMBEDDING_PROVIDER!r}. Supported: 'local', 'cohere'"
    )


__all__ = [
    "EmbeddingProvider",
    "CohereProvider",
    "LocalEmbeddingProvider",
    "build_embedding_provider",
]
