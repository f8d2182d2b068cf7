from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """
    Text segment produced for independent embedding.
    Produced fresh on every indexing run; only its VectorRecord is persisted.
    """
    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1)
    index: int = Field(ge=0, description="Ordinal position within the source document")
    total: int = Field(ge=1, description="Number of sibling chunks from the same document")
