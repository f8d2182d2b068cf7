from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional, Union

# Metadata values are scalars only; nested structures are not indexed.
Scalar = Union[str, int, float, bool, None]


class VectorRecord(BaseModel):
    """
    One embedded chunk inside a collection.
    - id: unique within its collection
    - embedding: fixed dimension per collection
    - metadata: scalar fields, always including the chunk `text`
    """
    model_config = ConfigDict(frozen=True)

    id: str
    embedding: List[float]
    metadata: Dict[str, Scalar] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        value: Optional[Scalar] = self.metadata.get("text")
        return value if isinstance(value, str) else ""

    @property
    def dimension(self) -> int:
        return len(self.embedding)
