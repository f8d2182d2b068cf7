"""
Shared fixtures: an in-process embedding provider and snapshot helpers.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from kb_search.adapters.embedding_providers.base import EmbeddingProvider
from kb_search.core.errors import ProviderError
from kb_search.indexing.base import Collection
from kb_search.models.record import VectorRecord
from kb_search.repositories.snapshot_repo import SnapshotRepo
from kb_search.services.search_service import SearchService

VOCABULARY = ("alpha", "beta", "gamma")


class FakeEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic provider for tests.
    Texts listed in `vectors` map to that vector; anything else becomes the
    keyword counts of VOCABULARY.
    """

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None, load_delay: float = 0.0) -> None:
        super().__init__("fake-model")
        self.vectors = dict(vectors or {})
        self.load_delay = load_delay
        self.load_calls = 0
        self.batches: List[List[str]] = []
        self.fail_load = False
        self.fail_embed = False

    async def _load(self) -> None:
        self.load_calls += 1
        await asyncio.sleep(self.load_delay)
        if self.fail_load:
            raise RuntimeError("model download failed")

    async def _embed(self, texts: List[str], *, query: bool) -> List[List[float]]:
        if self.fail_embed:
            raise ProviderError("embedding backend unavailable")
        self.batches.append(list(texts))
        return [self.vector_for(t) for t in texts]

    def vector_for(self, text: str) -> List[float]:
        if text in self.vectors:
            return self.vectors[text]
        lowered = text.lower()
        return [float(lowered.count(word)) for word in VOCABULARY]


class CountingRepo(SnapshotRepo):
    def __init__(self) -> None:
        self.loads = 0

    def load(self, path, name=None, remediation=None):
        self.loads += 1
        return super().load(path, name, remediation)


def record(id: str, embedding: Sequence[float], **metadata) -> VectorRecord:
    return VectorRecord(id=id, embedding=list(embedding), metadata=metadata)


DISCORD_RECORDS = [
    record("m1", [1.0, 0.0], text="deploy the alpha build", server_id="s1", channel_id="c1",
           author="alice", date="2024-01-10", time="09:00", message_id="101"),
    record("m2", [0.9, 0.1], text="alpha alpha alpha notes", server_id="s1", channel_id="c2",
           author="bob", date="2024-02-01", time="10:30", message_id="102"),
    record("m3", [0.0, 1.0], text="unrelated chatter", server_id="s2", channel_id="c1",
           author="alice", date="2024-03-05", time="11:15", message_id="103"),
    record("m4", [0.8, 0.2], text="alpha", server_id="s1", channel_id="c1",
           author="carol", message_id="104"),
]

DOCS_RECORDS = [
    record("docs/guides/deploy.md_chunk_0", [1.0, 0.0], text="alpha deployment guide",
           file_path="docs/guides/deploy.md", category="how-to", doc_type="guides",
           section="Deploy", chunk_index=0, total_chunks=1),
    record("docs/reference/api.md_chunk_0", [0.0, 1.0], text="api reference",
           file_path="docs/reference/api.md", category="reference", doc_type="reference",
           section="API", chunk_index=0, total_chunks=1),
]

KNOWLEDGE_RECORDS = [
    record("context/ai/models.md_chunk_0", [0.9, 0.1], text="alpha model notes",
           file_path="context/ai/models.md", cluster="ai", section="Models", chunk_index=0, total_chunks=1),
    record("context/company/team.md_chunk_0", [0.5, 0.5], text="team",
           file_path="context/company/team.md", cluster="company", section="Team", chunk_index=0, total_chunks=1),
]


@pytest.fixture
def provider() -> FakeEmbeddingProvider:
    # the query "alpha" points straight along the first axis
    return FakeEmbeddingProvider(vectors={"alpha": [1.0, 0.0], "beta": [0.0, 1.0]})


@pytest.fixture
def snapshot_paths(tmp_path: Path) -> Dict[str, Path]:
    return {name: tmp_path / name / "vectors.json" for name in ("discord", "docs", "knowledge")}


@pytest.fixture
def write_snapshot(snapshot_paths):
    """Write a snapshot for a source: write_snapshot("docs", records)."""

    def _write(source: str, records: Sequence[VectorRecord]) -> Path:
        path = snapshot_paths[source]
        SnapshotRepo().save(Collection(source, records), path, "fake-model")
        return path

    return _write


@pytest.fixture
def service(provider, snapshot_paths) -> SearchService:
    return SearchService(provider=provider, repo=CountingRepo(), snapshot_paths=snapshot_paths)


@pytest.fixture
def populated_service(service, write_snapshot) -> SearchService:
    write_snapshot("discord", DISCORD_RECORDS)
    write_snapshot("docs", DOCS_RECORDS)
    write_snapshot("knowledge", KNOWLEDGE_RECORDS)
    return service
