"""
Data model shared by the loader, chunker, vector store and retriever.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Document:
    """Raw text read from a source, before chunking."""

    text: str
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Chunk:
    """
    A bounded fragment of a document.

    Chunks are immutable: the chunker creates them without an embedding and
    `with_embedding` returns a populated copy.
    Metadata is copied into a read-only mapping, so a stored chunk cannot be
    changed through the object a search returns.
    """

    id: str
    text: str
    metadata: Mapping[str, str] = field(default_factory=dict)
    embedding: Optional[Tuple[float, ...]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def with_embedding(self, embedding: Sequence[float]) -> Chunk:
        return replace(self, embedding=tuple(float(v) for v in embedding))

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    def to_record(self) -> Dict[str, object]:
        """Shape written to the persisted index."""
        return {
            "id": self.id,
            "text": self.text,
            "metadata": dict(self.metadata),
            "embedding": list(self.embedding) if self.embedding is not None else None,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, object]) -> Chunk:
        """
        Build a chunk from a persisted record.

        Raises ValueError/TypeError/KeyError on malformed input; the vector
        store turns those into CorruptIndexError.
        """
        chunk_id = record["id"]
        text = record["text"]
        metadata = record.get("metadata")
        if metadata is None:
            metadata = {}
        raw_embedding = record["embedding"]

        if not isinstance(chunk_id, str) or not chunk_id:
            raise ValueError(f"invalid id {chunk_id!r}")
        if not isinstance(text, str):
            raise TypeError(f"text of {chunk_id} is not a string")
        if not isinstance(metadata, Mapping):
            raise TypeError(f"metadata of {chunk_id} is not a mapping")
        if not isinstance(raw_embedding, list) or not raw_embedding:
            raise ValueError(f"embedding of {chunk_id} is missing or empty")

        embedding: List[float] = []
        for value in raw_embedding:
            # bool is an int subclass; reject it explicitly
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f"embedding of {chunk_id} has a non-numeric value")
            if not math.isfinite(value):
                raise ValueError(f"embedding of {chunk_id} has a non-finite value")
            embedding.append(float(value))

        return cls(
            id=chunk_id,
            text=text,
            metadata={str(k): str(v) for k, v in metadata.items()},
            embedding=tuple(embedding),
        )


@dataclass(frozen=True)
class ScoredChunk:
    """A search hit: the stored chunk and its cosine similarity to the query."""

    chunk: Chunk
    score: float

    @property
    def text(self) -> str:
        return self.chunk.text

    @property
    def metadata(self) -> Mapping[str, str]:
        return self.chunk.metadata


@dataclass(frozen=True)
class RagAnswer:
    query: str
    answer: str
    sources: List[ScoredChunk] = field(default_factory=list)
