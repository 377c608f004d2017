"""
Project-wide constants that are unlikely to change at runtime.
"""

from typing import Dict, Final, List

SUPPORTED_EMBEDDING_PROVIDERS: Final[List[str]] = [
    "sentence-transformers",
    "openai",
]

SUPPORTED_CHUNKING_STRATEGIES: Final[List[str]] = [
    "recursive",
    "fixed",
]

# Source documents read with pandas instead of as plain text
TABULAR_EXTENSIONS: Final[List[str]] = [".csv", ".xlsx", ".xls"]

DEFAULT_EXCEL_SHEET_NAME: Final[str] = "Sheet1"

# Column names tried, in order, when a tabular source is loaded
DEFAULT_TEXT_COLUMNS: Final[List[str]] = [
    "text",
    "content",
    "body",
    "message",
]

DEFAULT_VECTOR_STORE_FILENAME: Final[str] = "vectorstore.json"

DEFAULT_EMBEDDING_MODEL: Final[str] = "sentence-transformers/all-MiniLM-L6-v2"

# Default embedding dimension for all-MiniLM-L6-v2
DEFAULT_EMBEDDING_DIM: Final[int] = 384

# Known output sizes of hosted embedding models
OPENAI_EMBEDDING_DIMS: Final[Dict[str, int]] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

# Inputs per embeddings.create call accepted by the OpenAI API
OPENAI_EMBEDDING_BATCH_LIMIT: Final[int] = 2048

# Metadata keys written by the loader and chunker
METADATA_FILENAME: Final[str] = "filename"
METADATA_SOURCE: Final[str] = "source"
METADATA_CHUNK_INDEX: Final[str] = "chunk_index"
METADATA_ROW_NUMBER: Final[str] = "row_number"
METADATA_COLUMN: Final[str] = "column"
