"""
Embedding clients: the boundary between the store and whatever turns text
into vectors.

Every client raises EmbeddingServiceError when its backend fails, whatever
the underlying library raised.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Sequence

import numpy as np
import openai
from sentence_transformers import SentenceTransformer

from .config import Config
from .constants import OPENAI_EMBEDDING_BATCH_LIMIT, OPENAI_EMBEDDING_DIMS
from .errors import EmbeddingServiceError
from .logging_utils import get_logger


logger = get_logger(__name__)


class EmbeddingClient(ABC):
    """
    Converts text into fixed-length float vectors.
    """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector this client returns."""

    @abstractmethod
    def embed_many(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed a batch of texts, preserving order."""

    def embed(self, text: str) -> List[float]:
        vectors = self.embed_many([text])
        if len(vectors) != 1:
            raise EmbeddingServiceError(
                f"Expected 1 embedding from {type(self).__name__}, got {len(vectors)}"
            )
        return vectors[0]


class SentenceTransformerEmbeddingClient(EmbeddingClient):
    """
    Thin wrapper around SentenceTransformer with lazy loading.
    """

    def __init__(
        self,
        model_name: str,
        batch_size: int = 32,
        device: str | None = None,
        normalize: bool = True,
    ) -> None:
        self.model_name = model_name
        self.batch_size = batch_size
        self.device = device
        self.normalize = normalize
        self._model: SentenceTransformer | None = None

    @property
    def model(self) -> SentenceTransformer:
        if self._model is None:
            logger.info("Loading embedding model '%s'...", self.model_name)
            try:
                self._model = SentenceTransformer(self.model_name, device=self.device)
            except Exception as exc:
                raise EmbeddingServiceError(
                    f"Cannot load embedding model '{self.model_name}': {exc}"
                ) from exc
            logger.info("Model loaded.")
        return self._model

    @property
    def dimension(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    def embed_many(self, texts: Iterable[str]) -> List[List[float]]:
        texts_list: List[str] = list(texts)
        if not texts_list:
            return []
        logger.info("Encoding %d texts into embeddings", len(texts_list))
        model = self.model
        try:
            embeddings = model.encode(
                texts_list,
                batch_size=self.batch_size,
                convert_to_numpy=True,
                normalize_embeddings=self.normalize,
                show_progress_bar=len(texts_list) > self.batch_size,
            )
        except Exception as exc:
            raise EmbeddingServiceError(
                f"Embedding model '{self.model_name}' failed: {exc}"
            ) from exc
        return np.asarray(embeddings, dtype=np.float64).tolist()


class OpenAIEmbeddingClient(EmbeddingClient):
    """
    Embedding client backed by the OpenAI embeddings API (or a compatible
    endpoint when ``base_url`` is set). Batches inputs above the per-call
    limit.
    """

    def __init__(
        self,
        model_name: str,
        api_key: str,
        base_url: str | None = None,
        client: openai.OpenAI | None = None,
    ) -> None:
        self.model_name = model_name
        if client is None:
            client_kwargs: dict = {"api_key": api_key}
            if base_url:
                client_kwargs["base_url"] = base_url
            client = openai.OpenAI(**client_kwargs)
        self._client = client
        self._dimension = OPENAI_EMBEDDING_DIMS.get(model_name)

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            # Unknown model: ask the API once
            self._dimension = len(self.embed("dimension probe"))
        return self._dimension

    def embed_many(self, texts: Sequence[str]) -> List[List[float]]:
        texts_list = list(texts)
        if not texts_list:
            return []

        vectors: List[List[float]] = []
        try:
            for start in range(0, len(texts_list), OPENAI_EMBEDDING_BATCH_LIMIT):
                batch = texts_list[start : start + OPENAI_EMBEDDING_BATCH_LIMIT]
                response = self._client.embeddings.create(input=batch, model=self.model_name)
                ordered = sorted(response.data, key=lambda item: item.index)
                vectors.extend([float(v) for v in item.embedding] for item in ordered)
                logger.info(
                    "Embedded batch of %d texts with '%s' (tokens=%s)",
                    len(batch),
                    self.model_name,
                    response.usage.total_tokens if response.usage else None,
                )
        except openai.OpenAIError as exc:
            raise EmbeddingServiceError(
                f"OpenAI embeddings request failed for '{self.model_name}': {exc}"
            ) from exc

        if len(vectors) != len(texts_list):
            raise EmbeddingServiceError(
                f"OpenAI returned {len(vectors)} embeddings for {len(texts_list)} inputs"
            )
        return vectors


def resolve_embedding_dim(cfg: Config) -> int:
    """
    Dimension the configured model produces, without loading it.
    """
    if cfg.embedding_provider == "openai":
        return OPENAI_EMBEDDING_DIMS.get(cfg.embedding_model, cfg.embedding_dim)
    return cfg.embedding_dim


def build_embedding_client(cfg: Config) -> EmbeddingClient:
    """
    Select the embedding client named by EMBEDDING_PROVIDER.
    """
    provider = cfg.embedding_provider.lower()
    logger.info("Using embedding provider=%s, model=%s", provider, cfg.embedding_model)
    if provider == "sentence-transformers":
        return SentenceTransformerEmbeddingClient(
            model_name=cfg.embedding_model,
            batch_size=cfg.embedding_batch_size,
            device=cfg.embedding_device,
        )
    if provider == "openai":
        return OpenAIEmbeddingClient(
            model_name=cfg.embedding_model,
            api_key=cfg.openai_api_key,
            base_url=cfg.openai_base_url,
        )
    raise ValueError(f"Unsupported embedding provider: {cfg.embedding_provider}")
