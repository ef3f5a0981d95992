"""
Vector store interface and shared types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Protocol, Sequence, Tuple


@dataclass(frozen=True)
class Chunk:
    text: str
    position: int
    source_id: str


@dataclass
class EmbeddedChunk:
    chunk: Chunk
    vector: List[float]
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.chunk.text


class VectorStore(Protocol):
    embedding_model: str | None

    def clear(self) -> None:
        ...

    def insert(self, items: Sequence[EmbeddedChunk]) -> None:
        ...

    def search(self, query_vector: Sequence[float], k: int) -> List[Tuple[EmbeddedChunk, float]]:
        ...

    def __len__(self) -> int:
        ...


__all__ = ["Chunk", "EmbeddedChunk", "VectorStore"]
