"""
One-shot build-or-load of the vector store at process startup.

If a persisted index exists it is loaded; otherwise the source document is
loaded, chunked, embedded, added to the store and saved. Either path ends
in READY, or in FAILED with a StoreInitializationError.
"""

from __future__ import annotations

import threading
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from .chunking import chunk_documents
from .config import Config
from .data_loader import load_documents
from .embedding import EmbeddingClient, build_embedding_client, resolve_embedding_dim
from .errors import StoreInitializationError
from .logging_utils import get_logger, log_duration
from .models import Chunk, Document
from .vector_store import JsonVectorStore, VectorStore


logger = get_logger(__name__)


class InitState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING_FROM_DISK = "loading_from_disk"
    BUILDING = "building"
    PERSISTING = "persisting"
    READY = "ready"
    FAILED = "failed"


class StoreInitializer:
    """
    Drives the store from UNINITIALIZED to READY exactly once.

    Load path: UNINITIALIZED -> LOADING_FROM_DISK -> READY.
    Build path: UNINITIALIZED -> BUILDING -> PERSISTING -> READY.
    """

    def __init__(
        self,
        index_path: str,
        source_path: str,
        embedding_client: EmbeddingClient,
        chunk_size: int = 800,
        chunk_overlap: int = 100,
        chunking_strategy: str = "recursive",
        embedding_batch_size: int = 32,
        store_factory: Callable[[], VectorStore] = JsonVectorStore,
        loader: Callable[[str], List[Document]] = load_documents,
        rebuild: bool = False,
    ) -> None:
        self.index_path = Path(index_path)
        self.source_path = source_path
        self.embedding_client = embedding_client
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.chunking_strategy = chunking_strategy
        self.embedding_batch_size = max(1, embedding_batch_size)
        self.store_factory = store_factory
        self.loader = loader
        self.rebuild = rebuild

        self._state = InitState.UNINITIALIZED
        self._store: Optional[VectorStore] = None
        self._failure: Optional[StoreInitializationError] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def store(self) -> Optional[VectorStore]:
        """The store once READY, else None."""
        return self._store if self._state is InitState.READY else None

    def _transition(self, new_state: InitState) -> None:
        logger.info("Vector store state: %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    def initialize(self) -> VectorStore:
        """
        Bring the store to READY and return it.

        Safe to call repeatedly and from several threads: only the first
        call does any work. A failed initialisation raises again on every
        later call.
        """
        with self._lock:
            if self._state is InitState.READY:
                return self._store
            if self._state is InitState.FAILED:
                raise self._failure

            store = self.store_factory()
            try:
                if self.rebuild:
                    logger.info(
                        "Rebuild requested, building from '%s' over '%s'",
                        self.source_path,
                        self.index_path,
                    )
                    self._build(store)
                elif self.index_path.exists():
                    logger.info("Vector store file '%s' exists, loading it", self.index_path)
                    self._load(store)
                else:
                    logger.info(
                        "Vector store file '%s' does not exist, building from '%s'",
                        self.index_path,
                        self.source_path,
                    )
                    self._build(store)
            except Exception as exc:
                failed_in = self._state
                self._transition(InitState.FAILED)
                self._failure = StoreInitializationError(
                    f"Vector store initialisation failed while {failed_in.value}: {exc}"
                )
                logger.error("%s", self._failure)
                raise self._failure from exc

            self._store = store
            self._transition(InitState.READY)
            return store

    def _load(self, store: VectorStore) -> None:
        self._transition(InitState.LOADING_FROM_DISK)
        with log_duration(logger, "Loading vector store"):
            store.load(str(self.index_path))

    def _build(self, store: VectorStore) -> None:
        self._transition(InitState.BUILDING)
        with log_duration(logger, "Building vector store"):
            documents = self.loader(self.source_path)
            chunks = chunk_documents(
                documents,
                strategy=self.chunking_strategy,
                chunk_size=self.chunk_size,
                chunk_overlap=self.chunk_overlap,
            )
            store.add(self._embed(chunks))

        self._transition(InitState.PERSISTING)
        store.save(str(self.index_path))
        logger.info(
            "Vector store initialised and saved with %d document chunks", len(store)
        )

    def _embed(self, chunks: List[Chunk]) -> List[Chunk]:
        embedded: List[Chunk] = []
        for start in range(0, len(chunks), self.embedding_batch_size):
            batch = chunks[start : start + self.embedding_batch_size]
            vectors = self.embedding_client.embed_many([c.text for c in batch])
            if len(vectors) != len(batch):
                raise StoreInitializationError(
                    f"Embedding client returned {len(vectors)} vectors for {len(batch)} chunks"
                )
            embedded.extend(c.with_embedding(v) for c, v in zip(batch, vectors))
        logger.info("Embedded %d chunks", len(embedded))
        return embedded


def build_initializer(
    cfg: Config,
    embedding_client: Optional[EmbeddingClient] = None,
    rebuild: bool = False,
) -> StoreInitializer:
    """
    Wire a StoreInitializer from configuration.
    """
    client = embedding_client or build_embedding_client(cfg)
    dimension = resolve_embedding_dim(cfg)

    def _loader(source_path: str) -> List[Document]:
        return load_documents(
            source_path,
            text_columns=cfg.text_columns,
            sheet_name=cfg.default_sheet_name,
        )

    return StoreInitializer(
        index_path=cfg.vector_store_path,
        source_path=cfg.source_document_path,
        embedding_client=client,
        chunk_size=cfg.chunk_size,
        chunk_overlap=cfg.chunk_overlap,
        chunking_strategy=cfg.chunking_strategy,
        embedding_batch_size=cfg.embedding_batch_size,
        store_factory=lambda: JsonVectorStore(embedding_dim=dimension),
        loader=_loader,
        rebuild=rebuild,
    )


def initialize_store(
    cfg: Config,
    embedding_client: Optional[EmbeddingClient] = None,
    rebuild: bool = False,
) -> VectorStore:
    return build_initializer(cfg, embedding_client, rebuild=rebuild).initialize()
