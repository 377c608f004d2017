"""
Persistent vector store and retrieval pipeline for a single source document.
"""

from .errors import (
    ChunkingError,
    CorruptIndexError,
    DuplicateIdError,
    EmbeddingServiceError,
    InvalidChunkError,
    RagStoreError,
    SourceNotFoundError,
    StoreInitializationError,
)
from .models import Chunk, Document, RagAnswer, ScoredChunk

__all__ = [
    "Chunk",
    "ChunkingError",
    "CorruptIndexError",
    "Document",
    "DuplicateIdError",
    "EmbeddingServiceError",
    "InvalidChunkError",
    "RagAnswer",
    "RagStoreError",
    "ScoredChunk",
    "SourceNotFoundError",
    "StoreInitializationError",
]
