"""
Exception taxonomy for loading, chunking, embedding, storing and initialising.
"""


class RagStoreError(Exception):
    """Base class for every error raised by rag_vector_store."""


class SourceNotFoundError(RagStoreError):
    """The source document cannot be opened or read."""


class ChunkingError(RagStoreError):
    """A document cannot be split within the configured chunk size."""


class InvalidChunkError(RagStoreError):
    """A chunk has no embedding or one of the wrong dimensionality."""


class DuplicateIdError(RagStoreError):
    """A chunk id is already present in the store."""


class CorruptIndexError(RagStoreError):
    """A persisted index cannot be parsed or is internally inconsistent."""


class EmbeddingServiceError(RagStoreError):
    """The embedding backend failed to produce a vector."""


class StoreInitializationError(RagStoreError):
    """The store could not be brought to the READY state."""
