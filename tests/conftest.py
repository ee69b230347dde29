"""Shared pytest fixtures for the driveRAG test suite."""

from __future__ import annotations

import hashlib
import struct
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from driverag.interfaces.drive_provider import IDriveProvider
from driverag.interfaces.embedding_provider import EmbeddingRole, IEmbeddingProvider
from driverag.interfaces.llm_provider import ILLMProvider
from driverag.interfaces.vector_store_provider import IVectorStoreProvider
from driverag.models.documents import DriveFile
from driverag.models.rag import EmbeddingVector, IndexStats, RetrievalMatch
from driverag.services.embedding_service import EmbeddingService
from driverag.utils.errors import DriveError

_EMBEDDING_DIM = 8


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Deterministic unit-length vector derived from SHA-256 of *text*."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    values = [(v % 1000) / 1000 + 0.01 for v in struct.unpack(f"<{dim}I", raw[: dim * 4])]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


# ---------------------------------------------------------------------------
# In-memory providers
# ---------------------------------------------------------------------------


class MockEmbeddingProvider(IEmbeddingProvider):
    """Deterministic embedding provider with per-model failure injection.

    ``failures[model]`` may be an exception (raised on every call) or a list
    of exceptions / ``None`` consumed one per call.
    """

    def __init__(self, models: list[str] | None = None, dimension: int = _EMBEDDING_DIM) -> None:
        self.models = models or ["embed-a", "embed-b"]
        self.dimension = dimension
        self.failures: dict[str, Any] = {}
        self.wrong_length: set[str] = set()
        self.calls: list[tuple[str, str, EmbeddingRole]] = []

    async def embed_single(
        self,
        text: str,
        *,
        model: str,
        role: EmbeddingRole = EmbeddingRole.DOCUMENT,
    ) -> list[float]:
        self.calls.append((model, text, role))
        failure = self.failures.get(model)
        if isinstance(failure, list):
            failure = failure.pop(0) if failure else None
        if failure is not None:
            raise failure
        if model in self.wrong_length:
            return [0.1] * (self.dimension + 1)
        return _hash_to_vector(text, self.dimension)

    def get_models(self) -> list[str]:
        return list(self.models)

    def get_dimension(self) -> int:
        return self.dimension

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class MockDriveProvider(IDriveProvider):
    """Drive provider serving files from dicts."""

    def __init__(self) -> None:
        self.files: list[DriveFile] = []
        self.contents: dict[str, bytes] = {}
        self.exports: dict[str, str] = {}
        self.list_error: Exception | None = None
        self.download_errors: dict[str, Exception] = {}

    def add_file(self, file_id: str, name: str, content: bytes, mime_type: str = "text/plain") -> None:
        self.files.append(DriveFile(id=file_id, name=name, mime_type=mime_type, size=len(content)))
        self.contents[file_id] = content

    def add_export(self, file_id: str, name: str, text: str, mime_type: str) -> None:
        self.files.append(DriveFile(id=file_id, name=name, mime_type=mime_type))
        self.exports[file_id] = text

    async def list_files(self, folder_id: str) -> list[DriveFile]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.files)

    async def download(self, file_id: str) -> bytes:
        if file_id in self.download_errors:
            raise self.download_errors[file_id]
        if file_id not in self.contents:
            raise DriveError(message=f"File {file_id} not found", provider_name="mock-drive")
        return self.contents[file_id]

    async def export_as_text(self, file_id: str, mime_type: str) -> str:
        return self.exports[file_id]

    def get_provider_name(self) -> str:
        return "mock-drive"

    def is_available(self) -> bool:
        return True


class MockVectorStore(IVectorStoreProvider):
    """In-memory vector store backed by a dict, scoring by dot product."""

    def __init__(self, dimension: int = _EMBEDDING_DIM) -> None:
        self.dimension = dimension
        self.store: dict[str, EmbeddingVector] = {}
        self.upsert_calls: list[list[EmbeddingVector]] = []
        self.upsert_error: Exception | None = None
        self.deleted_file_ids: list[str] = []

    async def upsert(self, vectors: list[EmbeddingVector]) -> int:
        self.upsert_calls.append(list(vectors))
        if self.upsert_error is not None:
            raise self.upsert_error
        for vector in vectors:
            self.store[vector.id] = vector
        return len(vectors)

    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalMatch]:
        scored = []
        for stored in self.store.values():
            if filters and filters.get("fileId") not in (None, stored.metadata.file_id):
                continue
            dot = sum(a * b for a, b in zip(vector, stored.values, strict=True))
            scored.append(
                RetrievalMatch(id=stored.id, score=max(0.0, min(1.0, dot)), metadata=stored.metadata)
            )
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]

    async def delete_by_file_id(self, file_id: str, keep_ids: set[str] | None = None) -> int:
        self.deleted_file_ids.append(file_id)
        keep = keep_ids or set()
        doomed = [
            vid for vid, v in self.store.items() if v.metadata.file_id == file_id and vid not in keep
        ]
        for vid in doomed:
            del self.store[vid]
        return len(doomed)

    async def get_stats(self) -> IndexStats:
        return IndexStats(
            index_name="test-index",
            dimension=self.dimension,
            total_vectors=len(self.store),
            total_files=len({v.metadata.file_id for v in self.store.values()}),
        )

    def get_provider_name(self) -> str:
        return "mock-vector-store"

    def is_available(self) -> bool:
        return True


class MockLLMProvider(ILLMProvider):
    """Streaming LLM whose per-model behaviour is configured in ``behaviours``.

    A behaviour is either an exception (raised by ``open_stream``) or a list
    of fragments to stream.
    """

    def __init__(self, models: list[str] | None = None) -> None:
        self.models = models or ["gen-lite", "gen-full"]
        self.behaviours: dict[str, Any] = {}
        self.opened: list[str] = []
        self.prompts: list[str] = []
        self.closed = 0

    async def open_stream(self, prompt: str, model: str) -> AsyncIterator[str]:
        self.opened.append(model)
        self.prompts.append(prompt)
        behaviour = self.behaviours.get(model, ["Hello", ", ", "world"])
        if isinstance(behaviour, Exception):
            raise behaviour
        return self._stream(list(behaviour))

    async def _stream(self, fragments: list[Any]) -> AsyncIterator[str]:
        try:
            for fragment in fragments:
                if isinstance(fragment, Exception):
                    raise fragment
                yield fragment
        finally:
            self.closed += 1

    def get_models(self) -> list[str]:
        return list(self.models)

    def get_provider_name(self) -> str:
        return "mock-llm"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def embedding_service(mock_embedding_provider: MockEmbeddingProvider) -> EmbeddingService:
    """EmbeddingService without cache or inter-call delay."""
    return EmbeddingService(provider=mock_embedding_provider, inter_call_delay=0)


@pytest.fixture
def mock_drive() -> MockDriveProvider:
    return MockDriveProvider()


@pytest.fixture
def mock_vector_store() -> MockVectorStore:
    return MockVectorStore()


@pytest.fixture
def mock_llm() -> MockLLMProvider:
    return MockLLMProvider()


@pytest.fixture
def mock_cache_provider() -> Any:
    """Return a MagicMock(spec=ICacheProvider) with AsyncMock methods."""
    from driverag.interfaces.cache_provider import ICacheProvider

    mock = MagicMock(spec=ICacheProvider)
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=None)
    mock.delete = AsyncMock(return_value=None)
    mock.clear = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def tmp_chroma_dir(tmp_path: Path) -> str:
    """Directory for a throwaway embedded ChromaDB store."""
    return str(tmp_path / "chromadb_test")


@pytest.fixture
def sample_document_text() -> str:
    """Multi-paragraph text for chunker and pipeline tests."""
    return (
        "Shared drives collect contracts, meeting notes and policy documents "
        "that nobody reads twice. Indexing them makes the knowledge searchable.\n\n"
        "Each document is split into overlapping chunks. The overlap keeps a "
        "sentence that straddles a boundary retrievable from either side.\n\n\n\n"
        "Chunks are embedded one at a time so that a rate limit on one model "
        "can fall back to the next without losing the batch.\r\n\r\n"
        "Finally the vectors are written to the index in a single upsert."
    )
