"""
Configuration management for the rag_vector_store project.

Values are primarily sourced from environment variables.
"""

from dataclasses import dataclass, field
import os
from typing import List

from dotenv import load_dotenv

from .constants import (
    SUPPORTED_EMBEDDING_PROVIDERS,
    SUPPORTED_CHUNKING_STRATEGIES,
    DEFAULT_TEXT_COLUMNS,
    DEFAULT_EXCEL_SHEET_NAME,
    DEFAULT_EMBEDDING_DIM,
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_VECTOR_STORE_FILENAME,
)


load_dotenv()


def _get_env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass
class Config:
    # Embeddings
    embedding_provider: str = os.getenv("EMBEDDING_PROVIDER", "sentence-transformers")
    embedding_model: str = os.getenv("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL)
    embedding_dim: int = int(os.getenv("EMBEDDING_DIM", str(DEFAULT_EMBEDDING_DIM)))
    embedding_batch_size: int = int(os.getenv("EMBEDDING_BATCH_SIZE", "32"))
    embedding_device: str | None = os.getenv("EMBEDDING_DEVICE", None)

    # OpenAI embeddings (only used with EMBEDDING_PROVIDER=openai)
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_base_url: str | None = os.getenv("OPENAI_BASE_URL", None)

    # Chunking (sizes are in characters)
    chunking_strategy: str = os.getenv("CHUNKING_STRATEGY", "recursive")
    chunk_size: int = int(os.getenv("CHUNK_SIZE", "800"))
    chunk_overlap: int = int(os.getenv("CHUNK_OVERLAP", "100"))

    # Persisted index and source document
    vector_store_path: str = os.getenv(
        "VECTOR_STORE_PATH", os.path.join("data", DEFAULT_VECTOR_STORE_FILENAME)
    )
    source_document_path: str = os.getenv("SOURCE_DOCUMENT_PATH", os.path.join("data", "source.txt"))

    # Retrieval
    retrieval_top_k: int = int(os.getenv("RETRIEVAL_TOP_K", "4"))
    similarity_threshold: float = float(os.getenv("SIMILARITY_THRESHOLD", "0.0"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Tabular sources (CSV / Excel)
    default_sheet_name: str = os.getenv(
        "EXCEL_SHEET_NAME", DEFAULT_EXCEL_SHEET_NAME
    )
    # Use default_factory to avoid mutable default issues with dataclasses
    text_columns: List[str] = field(
        default_factory=lambda: _get_env_list("TEXT_COLUMNS", DEFAULT_TEXT_COLUMNS)
    )

    def validate(self) -> None:
        if self.embedding_provider not in SUPPORTED_EMBEDDING_PROVIDERS:
            raise ValueError(
                f"Unsupported embedding provider '{self.embedding_provider}'. "
                f"Supported providers: {SUPPORTED_EMBEDDING_PROVIDERS}"
            )

        if self.chunking_strategy not in SUPPORTED_CHUNKING_STRATEGIES:
            raise ValueError(
                f"Unsupported chunking strategy '{self.chunking_strategy}'. "
                f"Supported strategies: {SUPPORTED_CHUNKING_STRATEGIES}"
            )

        if self.chunk_size <= 0:
            raise ValueError("CHUNK_SIZE must be a positive number of characters.")

        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError(
                f"CHUNK_OVERLAP must be >= 0 and smaller than CHUNK_SIZE "
                f"(got overlap={self.chunk_overlap}, size={self.chunk_size})."
            )

        if self.embedding_dim <= 0:
            raise ValueError("EMBEDDING_DIM must be a positive integer.")

        if self.retrieval_top_k <= 0:
            raise ValueError("RETRIEVAL_TOP_K must be a positive integer.")

        if not -1.0 <= self.similarity_threshold <= 1.0:
            raise ValueError("SIMILARITY_THRESHOLD must lie within [-1.0, 1.0].")

        if self.embedding_provider == "openai" and not self.openai_api_key:
            raise ValueError(
                "OPENAI_API_KEY must be set when using the openai embedding provider."
            )
