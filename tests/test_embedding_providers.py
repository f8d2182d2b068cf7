"""
Tests for embedding providers and their one-time initialization.
"""
import asyncio
import json

import httpx
import pytest

from kb_search.adapters.embedding_providers import (
    CohereProvider,
    LocalEmbeddingProvider,
    build_embedding_provider,
)
from kb_search.concurrency.once import AsyncOnce
from kb_search.core.config import Settings
from kb_search.core.errors import ArgumentError, ProviderError
from tests.conftest import FakeEmbeddingProvider


class TestAsyncOnce:
    """One-time async initialization."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_run(self):
        calls = []

        async def factory():
            calls.append(1)
            await asyncio.sleep(0.01)
            return "ready"

        once = AsyncOnce(factory)
        results = await asyncio.gather(*[once.get() for _ in range(10)])
        assert results == ["ready"] * 10
        assert len(calls) == 1
        assert once.done

    @pytest.mark.asyncio
    async def test_failure_not_cached(self):
        attempts = []

        async def factory():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("boom")
            return 42

        once = AsyncOnce(factory)
        with pytest.raises(RuntimeError):
            await once.get()
        assert not once.done
        assert await once.get() == 42


class TestEmbeddingProvider:
    """Shared provider behaviour."""

    @pytest.mark.asyncio
    async def test_lazy_load_once(self):
        provider = FakeEmbeddingProvider(load_delay=0.01)
        assert not provider.loaded
        await asyncio.gather(*[provider.embed_query("alpha") for _ in range(5)])
        assert provider.load_calls == 1
        assert provider.loaded

    @pytest.mark.asyncio
    async def test_empty_batch_skips_provider(self):
        provider = FakeEmbeddingProvider()
        assert await provider.embed([]) == []
        assert provider.batches == []
        assert provider.load_calls == 0

    @pytest.mark.asyncio
    async def test_batch_is_one_call(self):
        provider = FakeEmbeddingProvider()
        vectors = await provider.embed(["alpha", "beta gamma"])
        assert vectors == [[1.0, 0.0, 0.0], [0.0, 1.0, 1.0]]
        assert provider.batches == [["alpha", "beta gamma"]]

    @pytest.mark.asyncio
    async def test_load_failure_wrapped_and_retried(self):
        provider = FakeEmbeddingProvider()
        provider.fail_load = True
        with pytest.raises(ProviderError):
            await provider.embed_query("alpha")
        provider.fail_load = False
        assert await provider.embed_query("alpha") == [1.0, 0.0, 0.0]
        assert provider.load_calls == 2

    @pytest.mark.asyncio
    async def test_wrong_vector_count(self):
        class ShortProvider(FakeEmbeddingProvider):
            async def _embed(self, texts, *, query):
                return [[1.0]]

        with pytest.raises(ProviderError):
            await ShortProvider().embed(["a", "b"])


class TestCohereProvider:
    """Cohere embed API over a mocked transport."""

    @staticmethod
    def client(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_embed_documents_and_query(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            seen.append(body["input_type"])
            assert request.headers["Authorization"] == "Bearer test-key"
            assert body["model"] == "embed-english-v3.0"
            return httpx.Response(200, json={"embeddings": [[0.1, 0.2] for _ in body["texts"]]})

        provider = CohereProvider(api_key="test-key", model_name="embed-english-v3.0", client=self.client(handler))
        assert await provider.embed(["a", "b"]) == [[0.1, 0.2], [0.1, 0.2]]
        assert await provider.embed_query("a") == [0.1, 0.2]
        assert seen == ["search_document", "search_query"]
        assert provider.identifier == "cohere/embed-english-v3.0"
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_http_error(self):
        provider = CohereProvider(api_key="k", client=self.client(lambda r: httpx.Response(500, json={})))
        with pytest.raises(ProviderError):
            await provider.embed_query("a")
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        provider = CohereProvider(api_key="", client=self.client(lambda r: httpx.Response(200)))
        provider.api_key = None
        with pytest.raises(ProviderError):
            await provider.embed_query("a")


class TestFactory:
    """Provider selection from settings."""

    def test_local_default(self):
        provider = build_embedding_provider(Settings(EMBEDDING_PROVIDER="local", EMBEDDING_MODEL="all-MiniLM-L6-v2"))
        assert isinstance(provider, LocalEmbeddingProvider)
        assert provider.identifier == "all-MiniLM-L6-v2"
        assert not provider.loaded

    def test_cohere(self):
        provider = build_embedding_provider(Settings(EMBEDDING_PROVIDER="Cohere", COHERE_API_KEY="k"))
        assert isinstance(provider, CohereProvider)
        assert provider.api_key == "k"

    def test_unknown(self):
        with pytest.raises(ArgumentError):
            build_embedding_provider(Settings(EMBEDDING_PROVIDER="openai"))
