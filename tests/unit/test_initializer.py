"""Unit tests for StoreInitializer: the build-or-load state machine."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from rag_vector_store.config import Config
from rag_vector_store.data_loader import load_documents
from rag_vector_store.errors import StoreInitializationError
from rag_vector_store.initializer import InitState, StoreInitializer, build_initializer
from rag_vector_store.vector_store import JsonVectorStore
from tests.helpers import FakeEmbeddingClient


def _initializer(
    tmp_path: Path,
    source: Path,
    client: FakeEmbeddingClient,
    **kwargs,
) -> StoreInitializer:
    kwargs.setdefault("chunk_size", 150)
    kwargs.setdefault("chunk_overlap", 20)
    return StoreInitializer(
        index_path=str(tmp_path / "data" / "vectorstore.json"),
        source_path=str(source),
        embedding_client=client,
        **kwargs,
    )


class TestBuildPath:
    def test_build_embeds_adds_and_persists(
        self, tmp_path: Path, source_file: Path, fake_client: FakeEmbeddingClient
    ) -> None:
        initializer = _initializer(tmp_path, source_file, fake_client)
        assert initializer.state is InitState.UNINITIALIZED
        assert initializer.store is None

        store = initializer.initialize()

        assert initializer.state is InitState.READY
        assert initializer.store is store
        assert len(store) > 1
        assert all(c.metadata["filename"] == "models.txt" for c in store.chunks())
        assert all(len(c.embedding) == fake_client.dim for c in store.chunks())
        index = json.loads((tmp_path / "data" / "vectorstore.json").read_text(encoding="utf-8"))
        assert list(index) == [c.id for c in store.chunks()]

    def test_build_passes_through_states_in_order(
        self, tmp_path: Path, source_file: Path, fake_client: FakeEmbeddingClient
    ) -> None:
        initializer = _initializer(tmp_path, source_file, fake_client)
        seen = []
        original = initializer._transition

        def _record(state: InitState) -> None:
            seen.append(state)
            original(state)

        initializer._transition = _record
        initializer.initialize()

        assert seen == [InitState.BUILDING, InitState.PERSISTING, InitState.READY]

    def test_embedding_is_batched(self, tmp_path: Path, source_file: Path) -> None:
        client = FakeEmbeddingClient()
        initializer = _initializer(
            tmp_path, source_file, client, chunk_size=60, chunk_overlap=0, embedding_batch_size=2
        )

        store = initializer.initialize()

        assert all(len(batch) <= 2 for batch in client.calls)
        assert sum(len(batch) for batch in client.calls) == len(store)


class TestLoadPath:
    def test_existing_index_skips_loader_chunker_and_embeddings(
        self, tmp_path: Path, source_file: Path
    ) -> None:
        built = _initializer(tmp_path, source_file, FakeEmbeddingClient()).initialize()

        client = FakeEmbeddingClient()
        loader = MagicMock(side_effect=load_documents)
        with patch("rag_vector_store.initializer.chunk_documents") as chunker:
            initializer = _initializer(tmp_path, source_file, client, loader=loader)
            store = initializer.initialize()

        loader.assert_not_called()
        chunker.assert_not_called()
        assert client.calls == []
        assert initializer.state is InitState.READY
        assert [c.id for c in store.chunks()] == [c.id for c in built.chunks()]

    def test_load_passes_through_states_in_order(
        self, tmp_path: Path, source_file: Path
    ) -> None:
        _initializer(tmp_path, source_file, FakeEmbeddingClient()).initialize()
        initializer = _initializer(tmp_path, source_file, FakeEmbeddingClient())
        seen = []
        original = initializer._transition

        def _record(state: InitState) -> None:
            seen.append(state)
            original(state)

        initializer._transition = _record
        initializer.initialize()

        assert seen == [InitState.LOADING_FROM_DISK, InitState.READY]

    def test_load_works_without_source_document(self, tmp_path: Path, source_file: Path) -> None:
        _initializer(tmp_path, source_file, FakeEmbeddingClient()).initialize()
        source_file.unlink()

        store = _initializer(tmp_path, source_file, FakeEmbeddingClient()).initialize()

        assert len(store) > 0

    def test_rebuild_replaces_existing_index(self, tmp_path: Path, source_file: Path) -> None:
        first = _initializer(tmp_path, source_file, FakeEmbeddingClient()).initialize()
        client = FakeEmbeddingClient()

        second = _initializer(tmp_path, source_file, client, rebuild=True).initialize()

        assert client.calls
        assert {c.id for c in first.chunks()}.isdisjoint({c.id for c in second.chunks()})

    def test_failed_rebuild_keeps_existing_index(self, tmp_path: Path, source_file: Path) -> None:
        built = _initializer(tmp_path, source_file, FakeEmbeddingClient()).initialize()
        index = tmp_path / "data" / "vectorstore.json"
        before = index.read_bytes()

        with pytest.raises(StoreInitializationError, match="building"):
            _initializer(
                tmp_path, source_file, FakeEmbeddingClient(fail=True), rebuild=True
            ).initialize()

        assert index.read_bytes() == before
        reloaded = _initializer(tmp_path, source_file, FakeEmbeddingClient()).initialize()
        assert [c.id for c in reloaded.chunks()] == [c.id for c in built.chunks()]


class TestReadyIsTerminal:
    def test_second_initialize_returns_same_store(
        self, tmp_path: Path, source_file: Path
    ) -> None:
        client = FakeEmbeddingClient()
        loader = MagicMock(side_effect=load_documents)
        initializer = _initializer(tmp_path, source_file, client, loader=loader)

        first = initializer.initialize()
        (tmp_path / "data" / "vectorstore.json").unlink()
        second = initializer.initialize()

        assert first is second
        assert loader.call_count == 1
        assert not (tmp_path / "data" / "vectorstore.json").exists()

    def test_concurrent_callers_share_one_initialisation(
        self, tmp_path: Path, source_file: Path
    ) -> None:
        loader = MagicMock(side_effect=load_documents)
        initializer = _initializer(tmp_path, source_file, FakeEmbeddingClient(), loader=loader)

        with ThreadPoolExecutor(max_workers=6) as pool:
            stores = list(pool.map(lambda _: initializer.initialize(), range(6)))

        assert loader.call_count == 1
        assert all(s is stores[0] for s in stores)


class TestFailures:
    def test_missing_source_fails_startup(self, tmp_path: Path, fake_client) -> None:
        initializer = _initializer(tmp_path, tmp_path / "missing.txt", fake_client)

        with pytest.raises(StoreInitializationError, match="building"):
            initializer.initialize()

        assert initializer.state is InitState.FAILED
        assert initializer.store is None
        assert not (tmp_path / "data" / "vectorstore.json").exists()

    def test_embedding_failure_writes_no_index(self, tmp_path: Path, source_file: Path) -> None:
        initializer = _initializer(tmp_path, source_file, FakeEmbeddingClient(fail=True))

        with pytest.raises(StoreInitializationError) as excinfo:
            initializer.initialize()

        assert "embedding backend unavailable" in str(excinfo.value)
        assert not (tmp_path / "data" / "vectorstore.json").exists()

    def test_chunking_failure_is_fatal(self, tmp_path: Path, fake_client) -> None:
        source = tmp_path / "wide.txt"
        source.write_text("x" * 400, encoding="utf-8")

        with pytest.raises(StoreInitializationError):
            _initializer(tmp_path, source, fake_client).initialize()

    def test_corrupt_index_fails_startup(self, tmp_path: Path, source_file: Path, fake_client) -> None:
        index = tmp_path / "data" / "vectorstore.json"
        index.parent.mkdir()
        index.write_text("{truncated", encoding="utf-8")
        initializer = _initializer(tmp_path, source_file, fake_client)

        with pytest.raises(StoreInitializationError, match="loading_from_disk"):
            initializer.initialize()

        assert fake_client.calls == []
        assert initializer.state is InitState.FAILED

    def test_failure_is_sticky(self, tmp_path: Path, fake_client) -> None:
        loader = MagicMock(side_effect=load_documents)
        initializer = _initializer(tmp_path, tmp_path / "missing.txt", fake_client, loader=loader)

        with pytest.raises(StoreInitializationError):
            initializer.initialize()
        with pytest.raises(StoreInitializationError):
            initializer.initialize()

        assert loader.call_count == 1

    def test_cause_is_chained(self, tmp_path: Path, fake_client) -> None:
        initializer = _initializer(tmp_path, tmp_path / "missing.txt", fake_client)

        with pytest.raises(StoreInitializationError) as excinfo:
            initializer.initialize()

        assert excinfo.value.__cause__ is not None


class TestBuildInitializer:
    def test_wires_configuration(self, tmp_path: Path, source_file: Path) -> None:
        cfg = Config(
            embedding_provider="sentence-transformers",
            embedding_dim=16,
            chunk_size=120,
            chunk_overlap=10,
            chunking_strategy="fixed",
            vector_store_path=str(tmp_path / "vectorstore.json"),
            source_document_path=str(source_file),
        )
        client = FakeEmbeddingClient(dim=16)

        initializer = build_initializer(cfg, embedding_client=client)
        store = initializer.initialize()

        assert isinstance(store, JsonVectorStore)
        assert store.embedding_dim == 16
        assert max(len(c.text) for c in store.chunks()) <= 120
        assert Path(cfg.vector_store_path).is_file()

    def test_dimension_mismatch_with_configured_model_fails(
        self, tmp_path: Path, source_file: Path
    ) -> None:
        cfg = Config(
            embedding_provider="sentence-transformers",
            embedding_dim=384,
            vector_store_path=str(tmp_path / "vectorstore.json"),
            source_document_path=str(source_file),
        )

        with pytest.raises(StoreInitializationError):
            build_initializer(cfg, embedding_client=FakeEmbeddingClient(dim=16)).initialize()
