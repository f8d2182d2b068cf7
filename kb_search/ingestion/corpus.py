"""
Markdown corpus readers for the docs and knowledge sources.
Each file becomes one SourceDocument; the pipeline chunks it.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from kb_search.core.errors import ArgumentError, NotFoundError
from kb_search.models.document import SourceDocument

logger = logging.getLogger(__name__)

KNOWLEDGE_CLUSTERS = {
    "ai": "AI-related knowledge and documentation",
    "company": "Company information, processes, and culture",
    "rules": "Rules, policies, and guidelines",
    "info-signals": "Information signals and indicators",
}

DOCS_SKIP_DIRS = {"node_modules", ".git", "archive"}
KNOWLEDGE_SKIP_DIRS = {"node_modules", ".git", "discord"}  # discord has its own index

_HEADING_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def extract_section(content: str) -> str:
    match = _HEADING_RE.search(content)
    return match.group(1).strip() if match else "Introduction"


def doc_category(relative: Path) -> str:
    path = relative.as_posix().lower()
    if "tutorial" in path:
        return "tutorials"
    if "how-to" in path or "guides" in path:
        return "how-to"
    if "reference" in path:
        return "reference"
    if "explanation" in path or "architecture" in path:
        return "explanation"
    return "other"


def doc_type(relative: Path) -> str:
    path = relative.as_posix().lower()
    for prefix in ("architecture", "guides", "reference", "tutorials", "knowledge"):
        if path.startswith(prefix):
            return prefix
    return "general"


def knowledge_cluster(relative: Path) -> Optional[str]:
    """Cluster from the first path segment; None for files that belong to another index."""
    first = relative.parts[0].lower() if relative.parts else ""
    if first == "discord":
        return None
    return first if first in KNOWLEDGE_CLUSTERS else "general"


def find_markdown(root: Path, skip_dirs: Iterable[str]) -> List[Path]:
    if not root.is_dir():
        raise NotFoundError(f"Corpus directory not found: {root}")
    skip = set(skip_dirs)
    return sorted(
        p for p in root.rglob("*.md")
        if p.is_file() and not skip.intersection(p.relative_to(root).parts[:-1])
    )


def read_docs(docs_dir: Path, project_root: Optional[Path] = None) -> List[SourceDocument]:
    project_root = project_root or docs_dir.parent
    documents: List[SourceDocument] = []
    for path in find_markdown(docs_dir, DOCS_SKIP_DIRS):
        content = path.read_text(encoding="utf-8")
        if not content.strip():
            logger.info(f"Skipping empty file: {path}")
            continue
        rel_docs = path.relative_to(docs_dir)
        rel_root = path.relative_to(project_root).as_posix()
        documents.append(
            SourceDocument(
                id=rel_root,
                text=content,
                metadata={
                    "file_path": rel_root,
                    "category": doc_category(rel_docs),
                    "doc_type": doc_type(rel_docs),
                    "section": extract_section(content),
                },
            )
        )
    logger.info(f"Read {len(documents)} documentation files from {docs_dir}")
    return documents


def read_knowledge(knowledge_dir: Path, project_root: Optional[Path] = None) -> List[SourceDocument]:
    project_root = project_root or knowledge_dir.parent
    documents: List[SourceDocument] = []
    for path in find_markdown(knowledge_dir, KNOWLEDGE_SKIP_DIRS):
        cluster = knowledge_cluster(path.relative_to(knowledge_dir))
        if cluster is None:
            continue
        content = path.read_text(encoding="utf-8")
        if not content.strip():
            logger.info(f"Skipping empty file: {path}")
            continue
        rel_root = path.relative_to(project_root).as_posix()
        documents.append(
            SourceDocument(
                id=rel_root,
                text=content,
                metadata={"file_path": rel_root, "cluster": cluster, "section": extract_section(content)},
            )
        )
    logger.info(f"Read {len(documents)} knowledge files from {knowledge_dir}")
    return documents


def read_jsonl(path: Path) -> List[SourceDocument]:
    """Pre-exported documents, one {id?, text, metadata?} object per line."""
    if not path.exists():
        raise NotFoundError(f"Input file not found: {path}")
    documents: List[SourceDocument] = []
    with path.open(encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, 1):
            if not line.strip():
                continue
            try:
                documents.append(SourceDocument.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as e:
                raise ArgumentError(f"{path}:{line_no}: invalid document: {e}") from e
    return documents
