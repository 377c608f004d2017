"""
Query-time retrieval: embed the question, search the store, and hand the
matched chunks to a language-model callable as grounding context.
"""

from __future__ import annotations

from typing import Callable, List, Sequence

from .embedding import EmbeddingClient
from .logging_utils import get_logger
from .models import RagAnswer, ScoredChunk
from .vector_store import VectorStore


logger = get_logger(__name__)

# (query, context texts) -> generated answer
AnswerGenerator = Callable[[str, Sequence[str]], str]


class Retriever:
    """
    Read-only view over a READY store. Safe to share between request threads.
    """

    def __init__(
        self,
        store: VectorStore,
        embedding_client: EmbeddingClient,
        top_k: int = 4,
        similarity_threshold: float = 0.0,
    ) -> None:
        if top_k <= 0:
            raise ValueError(f"top_k must be positive, got {top_k}")
        self.store = store
        self.embedding_client = embedding_client
        self.top_k = top_k
        self.similarity_threshold = similarity_threshold

    def retrieve(self, query: str) -> List[ScoredChunk]:
        """
        Return the chunks most similar to ``query``, best first.

        EmbeddingServiceError from the query embedding propagates unchanged.
        """
        if not query or not query.strip():
            raise ValueError("query must be a non-empty string")

        query_embedding = self.embedding_client.embed(query)
        results = self.store.search(
            query_embedding,
            top_k=self.top_k,
            similarity_threshold=self.similarity_threshold,
        )
        logger.info(
            "Retrieved %d chunks for query (top_k=%d, threshold=%.2f)",
            len(results),
            self.top_k,
            self.similarity_threshold,
        )
        return results

    def context_for(self, query: str) -> List[str]:
        return [hit.text for hit in self.retrieve(query)]

    def answer(self, query: str, generate: AnswerGenerator) -> RagAnswer:
        """
        Retrieve context for ``query`` and pass both to ``generate``.
        """
        sources = self.retrieve(query)
        generated = generate(query, [hit.text for hit in sources])
        return RagAnswer(query=query, answer=generated, sources=sources)
