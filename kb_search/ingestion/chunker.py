"""
Text chunking utilities.

Text is split on a separator into sections which are packed into chunks of at
most `size` characters. Sections that are too large on their own are split at
sentence boundaries; sentences that are still too large are cut into
`size`-character slices. When a chunk is closed, up to `overlap` trailing
characters are carried into the next one as long as the bound allows it.
"""

from __future__ import annotations

import re
from typing import List, Optional

from kb_search.core.errors import ArgumentError
from kb_search.models.chunk import Chunk

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200
DEFAULT_SEPARATOR = "\n\n"

# Terminated sentences, then an optional unterminated tail.
_SENTENCE_RE = re.compile(r"[^.!?]*[.!?]+|[^.!?]+\Z")


def default_overlap(size: int) -> int:
    """Overlap used when none is given: 200 characters, at most a fifth of `size`."""
    return min(DEFAULT_CHUNK_OVERLAP, size // 5)


def _split_sentences(section: str) -> List[str]:
    return _SENTENCE_RE.findall(section) or [section]


def _hard_split(sentence: str, size: int) -> List[str]:
    return [sentence[i : i + size] for i in range(0, len(sentence), size)]


def _overlap_tail(chunk: str, overlap: int, room: int) -> str:
    """Trailing text of `chunk` to seed the next chunk, starting on a word if possible."""
    n = min(overlap, room, len(chunk))
    if n <= 0:
        return ""
    tail = chunk[-n:]
    if n < len(chunk) and not chunk[-n - 1].isspace():
        cut = re.search(r"\s", tail)
        if cut:
            tail = tail[cut.end():]
    return tail.strip()


class _ChunkBuilder:
    def __init__(self, size: int, overlap: int) -> None:
        self.size = size
        self.overlap = overlap
        self.chunks: List[str] = []
        self.buffer = ""
        self._closed = ""  # last closed chunk, source of the next overlap seed

    def add(self, piece: str, joiner: str) -> None:
        if self.buffer:
            candidate = self.buffer + joiner + piece
            if len(candidate) <= self.size:
                self.buffer = candidate
                return
            self.flush()

        seed = ""
        if self._closed:
            # sentence pieces carry no joiner; keep seed and piece as separate words
            if not joiner and not piece[:1].isspace():
                joiner = " "
            seed = _overlap_tail(self._closed, self.overlap, self.size - len(joiner) - len(piece))
            self._closed = ""
        self.buffer = seed + joiner + piece if seed else piece

    def flush(self) -> None:
        closed = self.buffer.strip()
        self.buffer = ""
        if closed:
            self.chunks.append(closed)
            self._closed = closed


def chunk_text(
    text: str,
    size: int = DEFAULT_CHUNK_SIZE,
    overlap: Optional[int] = None,
    separator: str = DEFAULT_SEPARATOR,
) -> List[str]:
    """
    Split `text` into ordered, trimmed, non-empty chunks of at most `size` characters.
    Pure: identical input and options always give identical output.
    Without an explicit `overlap`, default_overlap(size) is used.
    """
    if size <= 0:
        raise ArgumentError("chunk size must be positive")
    if not separator:
        raise ArgumentError("separator must be non-empty")

    stripped = (text or "").strip()
    if not stripped:
        return []
    if len(stripped) <= size:
        return [stripped]

    if overlap is None:
        overlap = default_overlap(size)
    elif overlap < 0 or overlap >= size:
        raise ArgumentError("chunk overlap must be in [0, size)")

    builder = _ChunkBuilder(size, overlap)
    for section in text.split(separator):
        if not section.strip():
            continue
        if len(section) <= size:
            builder.add(section, separator)
            continue

        # Oversized section: close what we have, then pack sentence by sentence
        builder.flush()
        for sentence in _split_sentences(section):
            for piece in _hard_split(sentence, size) if len(sentence) > size else [sentence]:
                builder.add(piece, "")

    builder.flush()
    return builder.chunks


def chunk_document(
    text: str,
    size: int = DEFAULT_CHUNK_SIZE,
    overlap: Optional[int] = None,
    separator: str = DEFAULT_SEPARATOR,
) -> List[Chunk]:
    """chunk_text annotated with each chunk's ordinal and sibling count."""
    pieces = chunk_text(text, size=size, overlap=overlap, separator=separator)
    return [Chunk(text=p, index=i, total=len(pieces)) for i, p in enumerate(pieces)]


__all__ = ["chunk_text", "chunk_document", "default_overlap", "DEFAULT_CHUNK_SIZE", "DEFAULT_CHUNK_OVERLAP", "DEFAULT_SEPARATOR"]
