"""
Abstract base interface for vector stores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence

from ..models import Chunk, ScoredChunk


class VectorStore(ABC):
    """
    Interface for a collection of embedded chunks.

    Implementations are populated once at startup (``add`` or ``load``)
    and then serve concurrent ``search`` calls.
    """

    @property
    @abstractmethod
    def dimension(self) -> Optional[int]:
        """Embedding dimensionality of the stored chunks, or None when unknown."""

    @abstractmethod
    def add(self, chunks: Iterable[Chunk], allow_existing: bool = False) -> int:
        """
        Insert chunks with populated embeddings. Returns the number inserted.
        """

    @abstractmethod
    def delete(self, ids: Iterable[str]) -> int:
        """
        Remove chunks by id. Returns the number removed.
        """

    @abstractmethod
    def search(
        self,
        query_embedding: Sequence[float],
        top_k: int,
        similarity_threshold: float = 0.0,
    ) -> List[ScoredChunk]:
        """
        Return up to ``top_k`` chunks most similar to the query, best first.
        """

    @abstractmethod
    def save(self, destination: str) -> None:
        """
        Persist the full contents to ``destination``.
        """

    @abstractmethod
    def load(self, source: str) -> None:
        """
        Replace the in-memory contents with those persisted at ``source``.
        """

    @abstractmethod
    def chunks(self) -> List[Chunk]:
        """
        All stored chunks in insertion order.
        """

    @abstractmethod
    def __len__(self) -> int:
        ...
