"""Shared pytest fixtures for the rag_vector_store test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers import FakeEmbeddingClient


@pytest.fixture
def fake_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def sample_text() -> str:
    """A few paragraphs about language models, enough for several chunks."""
    paragraphs = [
        "OpenAI offers GPT-4o with a context window of 128000 tokens. "
        "It handles text and images and is the default chat model.",
        "Anthropic ships Claude models with context windows of 200000 tokens. "
        "They are tuned for long documents and careful reasoning.",
        "Cohere provides Command R with a 128000 token context window, "
        "aimed at retrieval augmented generation workloads.",
        "Mistral publishes open weight models such as Mixtral with a "
        "32000 token context window for self hosting.",
    ]
    return "\n\n".join(paragraphs)


@pytest.fixture
def source_file(tmp_path: Path, sample_text: str) -> Path:
    path = tmp_path / "models.txt"
    path.write_text(sample_text, encoding="utf-8")
    return path
