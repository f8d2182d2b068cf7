from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class SourceDocument(BaseModel):
    """
    Raw input to the indexing pipeline: {id?, text, metadata?}.
    Documents without an id are named after their position in the run (doc_<n>).
    """
    id: Optional[str] = None
    text: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
