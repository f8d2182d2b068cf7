"""
Per-source metadata schemas, checked at indexing time.
Each source has a closed set of optional fields plus the free-form chunk text.
"""

from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Dict, Optional, Type


class ChunkMetadata(BaseModel):
    """
    Fields every indexed chunk carries.
    - text: the chunk content (free-form)
    - chunk_index / total_chunks: position among sibling chunks
    """
    text: str
    chunk_index: Optional[int] = Field(default=None, ge=0)
    total_chunks: Optional[int] = Field(default=None, ge=1)

    # Strict validation - no extra fields allowed
    model_config = {"extra": "forbid"}


class DiscordMetadata(ChunkMetadata):
    server_id: Optional[str] = None
    channel_id: Optional[str] = None
    author: Optional[str] = None
    date: Optional[str] = Field(default=None, description="YYYY-MM-DD")
    time: Optional[str] = None
    message_id: Optional[str] = None


class DocsMetadata(ChunkMetadata):
    file_path: Optional[str] = None
    category: Optional[str] = Field(default=None, description="tutorials | how-to | reference | explanation | other")
    doc_type: Optional[str] = Field(default=None, description="Top-level docs directory, e.g. 'guides'")
    section: Optional[str] = Field(default=None, description="First heading of the file")


class KnowledgeMetadata(ChunkMetadata):
    file_path: Optional[str] = None
    cluster: Optional[str] = Field(default=None, description="ai | company | rules | info-signals | general")
    section: Optional[str] = None


SCHEMAS: Dict[str, Type[ChunkMetadata]] = {
    "discord": DiscordMetadata,
    "docs": DocsMetadata,
    "knowledge": KnowledgeMetadata,
}
