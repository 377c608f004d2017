"""Test doubles and builders shared across the unit tests."""

from __future__ import annotations

import zlib
from typing import List, Sequence

from rag_vector_store.embedding import EmbeddingClient
from rag_vector_store.errors import EmbeddingServiceError
from rag_vector_store.models import Chunk


class FakeEmbeddingClient(EmbeddingClient):
    """Deterministic bag-of-words embeddings; records every call."""

    def __init__(self, dim: int = 16, fail: bool = False) -> None:
        self.dim = dim
        self.fail = fail
        self.calls: List[List[str]] = []

    @property
    def dimension(self) -> int:
        return self.dim

    def _vector(self, text: str) -> List[float]:
        vector = [0.0] * self.dim
        for word in text.lower().split():
            vector[zlib.crc32(word.encode("utf-8")) % self.dim] += 1.0
        return vector

    def embed_many(self, texts: Sequence[str]) -> List[List[float]]:
        texts = list(texts)
        self.calls.append(texts)
        if self.fail:
            raise EmbeddingServiceError("embedding backend unavailable")
        return [self._vector(t) for t in texts]


def make_chunk(chunk_id: str, embedding, text: str | None = None, **metadata) -> Chunk:
    return Chunk(
        id=chunk_id,
        text=text if text is not None else f"text of {chunk_id}",
        metadata={"filename": "models.txt", **metadata},
        embedding=tuple(float(v) for v in embedding) if embedding is not None else None,
    )
