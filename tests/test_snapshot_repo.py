"""
Tests for the file-backed snapshot store.
"""
import json
import os

import pytest

from kb_search.core.errors import ArgumentError, NotFoundError, PersistenceError
from kb_search.indexing.base import Collection
from kb_search.repositories.snapshot_repo import SnapshotRepo, descriptor_path
from tests.conftest import record


@pytest.fixture
def repo():
    return SnapshotRepo()


@pytest.fixture
def collection():
    return Collection(
        "docs",
        [
            record("a_chunk_0", [0.1, 0.2, 0.3], text="first", file_path="docs/a.md"),
            record("b_chunk_0", [0.4, 0.5, 0.6], text="second", file_path="docs/b.md"),
        ],
    )


class TestSave:
    """Writing snapshots."""

    def test_writes_records_and_descriptor(self, repo, collection, tmp_path):
        path = tmp_path / "docs" / "vectors.json"
        descriptor = repo.save(collection, path, "all-MiniLM-L6-v2")

        stored = json.loads(path.read_text())
        assert [r["id"] for r in stored] == ["a_chunk_0", "b_chunk_0"]
        assert stored[0]["embedding"] == [0.1, 0.2, 0.3]
        assert stored[0]["metadata"]["text"] == "first"

        desc = json.loads(descriptor_path(path).read_text())
        assert desc["total_vectors"] == 2
        assert desc["dimensions"] == 3
        assert desc["embedding_model"] == "all-MiniLM-L6-v2"
        assert descriptor.total_vectors == 2
        assert repo.load_descriptor(path).embedding_model == "all-MiniLM-L6-v2"

    def test_no_temporary_files_left(self, repo, collection, tmp_path):
        path = tmp_path / "docs" / "vectors.json"
        repo.save(collection, path, "m")
        repo.save(collection, path, "m")
        assert sorted(p.name for p in path.parent.iterdir()) == ["metadata.json", "vectors.json"]

    def test_overwrite_replaces_whole_snapshot(self, repo, collection, tmp_path):
        path = tmp_path / "docs" / "vectors.json"
        repo.save(collection, path, "m")
        repo.save(Collection("docs", [record("only", [1.0, 0.0, 0.0], text="x")]), path, "m")
        assert repo.load(path).ids == ["only"]

    @staticmethod
    def fail_second_replace(monkeypatch):
        real_replace = os.replace
        calls = []

        def replace(src, dst):
            calls.append(dst)
            if len(calls) == 2:
                raise OSError("disk full")
            return real_replace(src, dst)

        monkeypatch.setattr(os, "replace", replace)

    def test_failed_descriptor_keeps_previous_pair(self, repo, collection, tmp_path, monkeypatch):
        path = tmp_path / "docs" / "vectors.json"
        repo.save(Collection("docs", [record("old", [1.0, 0.0, 0.0], text="x")]), path, "old-model")

        self.fail_second_replace(monkeypatch)
        with pytest.raises(PersistenceError):
            repo.save(collection, path, "new-model")
        monkeypatch.undo()

        assert repo.load(path).ids == ["old"]
        descriptor = repo.load_descriptor(path)
        assert descriptor.total_vectors == 1
        assert descriptor.embedding_model == "old-model"
        assert sorted(p.name for p in path.parent.iterdir()) == ["metadata.json", "vectors.json"]

    def test_failed_first_save_leaves_nothing(self, repo, collection, tmp_path, monkeypatch):
        path = tmp_path / "docs" / "vectors.json"
        self.fail_second_replace(monkeypatch)
        with pytest.raises(PersistenceError):
            repo.save(collection, path, "m")
        monkeypatch.undo()
        assert list(path.parent.iterdir()) == []

    def test_unwritable_target(self, repo, collection, tmp_path):
        blocker = tmp_path / "docs"
        blocker.write_text("not a directory")
        with pytest.raises(PersistenceError):
            repo.save(collection, blocker / "vectors.json", "m")


class TestLoad:
    """Reading snapshots back."""

    def test_round_trip(self, repo, collection, tmp_path):
        path = tmp_path / "docs" / "vectors.json"
        repo.save(collection, path, "m")
        loaded = repo.load(path)
        assert loaded.name == "docs"
        assert loaded.ids == collection.ids
        assert [r.embedding for r in loaded] == [r.embedding for r in collection]
        assert loaded.records[1].text == "second"

    def test_missing_snapshot_names_remediation(self, repo, tmp_path):
        with pytest.raises(NotFoundError) as exc:
            repo.load(tmp_path / "nope" / "vectors.json", remediation="python index_cli.py index docs")
        assert "python index_cli.py index docs" in str(exc.value)
        assert exc.value.remediation == "python index_cli.py index docs"

    def test_legacy_values_field(self, repo, tmp_path):
        path = tmp_path / "discord" / "vectors.json"
        path.parent.mkdir()
        path.write_text(json.dumps([
            {"id": "m1", "values": [1.0, 0.0], "metadata": {"text": "hi", "author": "alice"}},
        ]))
        loaded = repo.load(path)
        assert loaded.records[0].embedding == [1.0, 0.0]
        assert loaded.dimension == 2

    def test_corrupt_json(self, repo, tmp_path):
        path = tmp_path / "vectors.json"
        path.write_text("[{not json")
        with pytest.raises(PersistenceError):
            repo.load(path)

    def test_not_a_list(self, repo, tmp_path):
        path = tmp_path / "vectors.json"
        path.write_text(json.dumps({"id": "x"}))
        with pytest.raises(PersistenceError):
            repo.load(path)

    def test_malformed_record(self, repo, tmp_path):
        path = tmp_path / "vectors.json"
        path.write_text(json.dumps([{"id": "x", "metadata": {}}]))
        with pytest.raises(PersistenceError):
            repo.load(path)

    def test_mixed_dimensions(self, repo, tmp_path):
        path = tmp_path / "vectors.json"
        path.write_text(json.dumps([
            {"id": "a", "embedding": [1.0, 0.0]},
            {"id": "b", "embedding": [1.0, 0.0, 0.0]},
        ]))
        with pytest.raises(ArgumentError):
            repo.load(path)

    def test_missing_descriptor(self, repo, tmp_path):
        assert repo.load_descriptor(tmp_path / "vectors.json") is None
