"""
In-memory vector store persisted as a single JSON file.

The file is a JSON object keyed by chunk id; each value holds the chunk's
``id``, ``text``, ``metadata`` and ``embedding``.

Contents live in an immutable snapshot. Readers (``search``, ``chunks``)
take the current snapshot reference without locking; writers (``add``,
``delete``, ``load``) build a new snapshot under a lock and swap it in.
"""

from __future__ import annotations

import json
import math
import numbers
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .base import VectorStore
from ..errors import CorruptIndexError, DuplicateIdError, InvalidChunkError
from ..logging_utils import get_logger
from ..models import Chunk, ScoredChunk


logger = get_logger(__name__)


def _unit_rows(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    # Zero vectors stay zero and score 0.0 against everything
    safe = np.where(norms == 0.0, 1.0, norms)
    return matrix / safe


@dataclass(frozen=True)
class _Snapshot:
    chunks: Tuple[Chunk, ...] = ()
    positions: Dict[str, int] = field(default_factory=dict)
    unit_matrix: Optional[np.ndarray] = None

    @classmethod
    def build(cls, chunks: Sequence[Chunk]) -> _Snapshot:
        if not chunks:
            return cls()
        matrix = np.asarray([c.embedding for c in chunks], dtype=np.float64)
        unit = _unit_rows(matrix)
        unit.setflags(write=False)
        return cls(
            chunks=tuple(chunks),
            positions={c.id: i for i, c in enumerate(chunks)},
            unit_matrix=unit,
        )

    @property
    def dimension(self) -> Optional[int]:
        if self.unit_matrix is None:
            return None
        return int(self.unit_matrix.shape[1])


class JsonVectorStore(VectorStore):
    def __init__(self, embedding_dim: Optional[int] = None) -> None:
        """
        Args:
            embedding_dim: Dimension every chunk must have. When None, the
                first chunk added (or loaded) fixes it.
        """
        self.embedding_dim = embedding_dim
        self._snapshot = _Snapshot()
        self._write_lock = threading.Lock()

    @property
    def dimension(self) -> Optional[int]:
        return self._snapshot.dimension or self.embedding_dim

    def __len__(self) -> int:
        return len(self._snapshot.chunks)

    def __contains__(self, chunk_id: object) -> bool:
        return chunk_id in self._snapshot.positions

    def get(self, chunk_id: str) -> Optional[Chunk]:
        snapshot = self._snapshot
        position = snapshot.positions.get(chunk_id)
        return snapshot.chunks[position] if position is not None else None

    def chunks(self) -> List[Chunk]:
        return list(self._snapshot.chunks)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _check_embedding(self, chunk: Chunk, dimension: Optional[int]) -> int:
        if not chunk.has_embedding:
            raise InvalidChunkError(f"Chunk '{chunk.id}' has no embedding.")
        size = len(chunk.embedding)
        if dimension is not None and size != dimension:
            raise InvalidChunkError(
                f"Chunk '{chunk.id}' has dimension {size}, expected {dimension}."
            )
        # bool is an int subclass; reject it explicitly
        if not all(
            isinstance(v, numbers.Real) and not isinstance(v, bool) for v in chunk.embedding
        ):
            raise InvalidChunkError(f"Chunk '{chunk.id}' has a non-numeric embedding value.")
        if not all(math.isfinite(v) for v in chunk.embedding):
            raise InvalidChunkError(f"Chunk '{chunk.id}' has a non-finite embedding value.")
        return size

    def add(self, chunks: Iterable[Chunk], allow_existing: bool = False) -> int:
        """
        Insert chunks whose embeddings are populated.

        The batch is validated as a whole before anything is inserted.

        Args:
            chunks: Chunks to insert, in order.
            allow_existing: When True, chunks whose id is already stored are
                skipped instead of raising DuplicateIdError.

        Returns:
            Number of chunks actually inserted.
        """
        incoming = list(chunks)
        with self._write_lock:
            current = self._snapshot
            dimension = current.dimension or self.embedding_dim
            accepted: List[Chunk] = []
            batch_ids = set()

            for chunk in incoming:
                dimension = self._check_embedding(chunk, dimension)
                if chunk.id in batch_ids:
                    raise DuplicateIdError(f"Chunk id '{chunk.id}' is repeated in the batch.")
                batch_ids.add(chunk.id)
                if chunk.id in current.positions:
                    if allow_existing:
                        logger.debug("Skipping existing chunk '%s'", chunk.id)
                        continue
                    raise DuplicateIdError(f"Chunk id '{chunk.id}' already exists in the store.")
                accepted.append(chunk)

            if accepted:
                self._snapshot = _Snapshot.build(current.chunks + tuple(accepted))

        logger.info(
            "Added %d chunks to vector store (%d skipped, %d total)",
            len(accepted),
            len(incoming) - len(accepted),
            len(self),
        )
        return len(accepted)

    def delete(self, ids: Iterable[str]) -> int:
        doomed = set(ids)
        with self._write_lock:
            current = self._snapshot
            remaining = [c for c in current.chunks if c.id not in doomed]
            removed = len(current.chunks) - len(remaining)
            if removed:
                self._snapshot = _Snapshot.build(remaining)
        logger.info("Deleted %d chunks from vector store", removed)
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def search(
        self,
        query_embedding: Sequence[float],
        top_k: int,
        similarity_threshold: float = 0.0,
    ) -> List[ScoredChunk]:
        """
        Rank stored chunks by cosine similarity to ``query_embedding``.

        Chunks scoring below ``similarity_threshold`` are dropped; equal
        scores keep insertion order. An empty store, ``top_k == 0`` or no
        qualifying chunk all give an empty list.
        """
        if isinstance(top_k, bool) or not isinstance(top_k, (int, np.integer)):
            raise ValueError(f"top_k must be an integer, got {top_k!r}")
        if top_k < 0:
            raise ValueError(f"top_k must not be negative, got {top_k}")

        snapshot = self._snapshot
        if top_k == 0 or snapshot.unit_matrix is None:
            return []

        query = np.asarray(query_embedding, dtype=np.float64)
        if query.ndim != 1 or query.shape[0] != snapshot.dimension:
            raise ValueError(
                f"Query embedding has shape {query.shape}, "
                f"expected ({snapshot.dimension},)"
            )
        if not np.all(np.isfinite(query)):
            raise ValueError("Query embedding contains non-finite values")

        norm = np.linalg.norm(query)
        if norm == 0.0:
            scores = np.zeros(len(snapshot.chunks))
        else:
            scores = np.clip(snapshot.unit_matrix @ (query / norm), -1.0, 1.0)

        candidates = np.flatnonzero(scores >= similarity_threshold)
        # Stable sort keeps insertion order among equal scores
        ranked = candidates[np.argsort(-scores[candidates], kind="stable")][:top_k]
        return [
            ScoredChunk(chunk=snapshot.chunks[i], score=float(scores[i]))
            for i in ranked
        ]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, destination: str) -> None:
        """
        Write all chunks to ``destination`` atomically.

        The JSON goes to a temporary file beside the target, is fsynced and
        then renamed over it, so a reader never sees a partial index.
        """
        snapshot = self._snapshot
        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        records = {chunk.id: chunk.to_record() for chunk in snapshot.chunks}

        logger.info("Saving vector store with %d chunks to '%s'", len(records), path)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(records, handle, ensure_ascii=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def load(self, source: str) -> None:
        """
        Replace the contents with the index persisted at ``source``.

        Raises CorruptIndexError if the file is not a valid index; the
        current contents are left untouched in that case.
        """
        path = Path(source)
        logger.info("Loading vector store from '%s'", path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise CorruptIndexError(f"Index '{path}' is not valid JSON: {exc}") from exc

        if not isinstance(raw, dict):
            raise CorruptIndexError(
                f"Index '{path}' must be a JSON object keyed by chunk id, "
                f"got {type(raw).__name__}"
            )

        chunks: List[Chunk] = []
        dimension = self.embedding_dim
        for key, record in raw.items():
            if not isinstance(record, dict):
                raise CorruptIndexError(f"Record '{key}' in '{path}' is not an object")
            try:
                chunk = Chunk.from_record(record)
            except (KeyError, TypeError, ValueError) as exc:
                raise CorruptIndexError(f"Record '{key}' in '{path}' is invalid: {exc}") from exc
            if chunk.id != key:
                raise CorruptIndexError(
                    f"Record key '{key}' does not match its id '{chunk.id}' in '{path}'"
                )
            if dimension is None:
                dimension = len(chunk.embedding)
            elif len(chunk.embedding) != dimension:
                raise CorruptIndexError(
                    f"Record '{key}' in '{path}' has dimension {len(chunk.embedding)}, "
                    f"expected {dimension}"
                )
            chunks.append(chunk)

        with self._write_lock:
            self._snapshot = _Snapshot.build(chunks)
        logger.info("Loaded %d chunks (dimension=%s) from '%s'", len(chunks), dimension, path)
