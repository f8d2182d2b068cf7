"""
File-backed snapshot store: one JSON array of records per collection plus a
sibling descriptor (metadata.json) in the same directory.
"""

from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import logging
import os
import shutil
import tempfile

from pydantic import ValidationError

from kb_search.core.errors import NotFoundError, PersistenceError
from kb_search.indexing.base import Collection
from kb_search.models.record import VectorRecord
from kb_search.models.results import SnapshotDescriptor

logger = logging.getLogger(__name__)

DESCRIPTOR_NAME = "metadata.json"
LEGACY_EMBEDDING_FIELD = "values"

PathLike = Union[str, Path]


def descriptor_path(path: PathLike) -> Path:
    return Path(path).with_name(DESCRIPTOR_NAME)


def _normalize(raw: Dict[str, Any]) -> Dict[str, Any]:
    # Older discord snapshots stored vectors under "values"
    if LEGACY_EMBEDDING_FIELD in raw and not raw.get("embedding"):
        raw = {**raw, "embedding": raw[LEGACY_EMBEDDING_FIELD]}
    raw.pop(LEGACY_EMBEDDING_FIELD, None)
    return raw


class SnapshotRepo:
    """
    Saves and loads whole collections.
    Writes go to temporary files in the target directory and are renamed into
    place only after both files are fully written. If the descriptor cannot be
    renamed, the previous vectors file is restored.
    """

    def save(self, collection: Collection, path: PathLike, embedding_model: str) -> SnapshotDescriptor:
        target = Path(path)
        descriptor = SnapshotDescriptor(
            indexed_at=datetime.now(timezone.utc),
            total_vectors=len(collection),
            embedding_model=embedding_model,
            dimensions=collection.dimension,
        )
        records = [r.model_dump(mode="json") for r in collection]

        temps: List[Path] = []
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            vectors_tmp = self._write_temp(target, json.dumps(records, indent=2, ensure_ascii=False))
            temps.append(vectors_tmp)
            desc_tmp = self._write_temp(target, descriptor.model_dump_json(indent=2))
            temps.append(desc_tmp)
            backup = self._backup(target)
            if backup is not None:
                temps.append(backup)

            os.replace(vectors_tmp, target)
            try:
                os.replace(desc_tmp, descriptor_path(target))
            except OSError:
                # put the previous vectors back so they still match their descriptor
                if backup is not None:
                    os.replace(backup, target)
                else:
                    target.unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"failed to write snapshot {target}: {e}") from e
        finally:
            for tmp in temps:
                if tmp.exists():
                    tmp.unlink()

        logger.info(f"Saved {len(collection)} vectors to {target}")
        return descriptor

    def load(self, path: PathLike, name: Optional[str] = None, remediation: Optional[str] = None) -> Collection:
        target = Path(path)
        if not target.exists():
            raise NotFoundError(
                f"Vector database not found: {target}",
                remediation=remediation or "run indexing first",
            )

        try:
            raw = json.loads(target.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"failed to read snapshot {target}: {e}") from e
        if not isinstance(raw, list):
            raise PersistenceError(f"snapshot {target} is not a list of records")

        try:
            records = [VectorRecord(**_normalize(dict(item))) for item in raw]
        except (TypeError, ValueError, ValidationError) as e:
            raise PersistenceError(f"snapshot {target} holds a malformed record: {e}") from e

        collection = Collection(name or target.parent.name, records)
        logger.info(f"Loaded {len(collection)} vectors from {target}")
        return collection

    def load_descriptor(self, path: PathLike) -> Optional[SnapshotDescriptor]:
        desc = descriptor_path(path)
        if not desc.exists():
            return None
        try:
            return SnapshotDescriptor.model_validate_json(desc.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise PersistenceError(f"failed to read descriptor {desc}: {e}") from e

    @staticmethod
    def _backup(target: Path) -> Optional[Path]:
        """Copy of the current vectors file, or None when there is none yet."""
        if not target.exists():
            return None
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".bak")
        os.close(fd)
        try:
            shutil.copyfile(target, tmp_name)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return Path(tmp_name)

    @staticmethod
    def _write_temp(target: Path, payload: str) -> Path:
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return Path(tmp_name)
