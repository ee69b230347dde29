"""ChromaDB vector store provider adapter.

Wraps a ChromaDB client to implement :class:`IVectorStoreProvider`.  Runs
embedded (``PersistentClient``) by default, or against a Chroma server
(``HttpClient``) when ``CHROMA_HOST`` is set.  Uses cosine distance for
similarity search.

The collection handle is created lazily on first use and shared by every
caller; an ``asyncio.Lock`` makes sure concurrent first requests (an
ingestion run and a chat query, say) resolve to a single handle.
"""

from __future__ import annotations

import asyncio
import os
import time
from typing import Any

# ChromaDB reads this before its telemetry client is created.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import chromadb
import structlog

from driverag.interfaces.vector_store_provider import IVectorStoreProvider
from driverag.models.rag import EmbeddingVector, IndexStats, RetrievalMatch, VectorMetadata
from driverag.utils.errors import VectorStoreError

logger = structlog.get_logger(logger_name=__name__)

_UPSERT_BATCH_SIZE = 100
_STATS_PAGE_SIZE = 5000
_READY_POLL_INTERVAL = 0.5


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    driveRAG always passes pre-computed embeddings, so ChromaDB's built-in
    embedding is never invoked.  Without this, ChromaDB downloads its
    default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:  # noqa: A002
        raise NotImplementedError(
            "driveRAG uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB.

    Parameters
    ----------
    dimension:
        Dimensionality every stored vector must have.  Recorded in the
        collection metadata when the collection is created.
    persist_directory:
        On-disk location for the embedded client.
    collection_name:
        Name of the collection (the "index").
    host, port:
        When *host* is non-empty, connect to a Chroma server instead.
    ready_timeout:
        Seconds to wait for a freshly opened collection to answer.
    """

    def __init__(
        self,
        dimension: int,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "ai-chatbot-embeddings",
        host: str = "",
        port: int = 8000,
        ready_timeout: float = 30.0,
    ) -> None:
        self._dimension = dimension
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._host = host
        self._port = port
        self._ready_timeout = ready_timeout
        self._client: Any = None
        self._collection: Any = None
        self._init_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lazy initialisation
    # ------------------------------------------------------------------

    async def _get_collection(self) -> Any:
        """Return the shared collection handle, creating it exactly once."""
        if self._collection is not None:
            return self._collection
        async with self._init_lock:
            if self._collection is None:
                self._collection = await self._open_collection()
        return self._collection

    async def _open_collection(self) -> Any:
        try:
            if self._client is None:
                self._client = self._build_client()
            try:
                collection = self._client.get_or_create_collection(
                    name=self._collection_name,
                    metadata={"hnsw:space": "cosine", "dimension": self._dimension},
                    embedding_function=_NoopEmbeddingFunction(),
                )
            except ValueError:
                # Collection persisted with a different embedding function.
                collection = self._client.get_or_create_collection(
                    name=self._collection_name,
                    metadata={"hnsw:space": "cosine", "dimension": self._dimension},
                )
        except Exception as exc:
            raise VectorStoreError(
                message=f"Could not open collection '{self._collection_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        stored_dim = (collection.metadata or {}).get("dimension")
        if stored_dim is not None and stored_dim != self._dimension:
            raise VectorStoreError(
                message=(
                    f"Dimension mismatch: collection '{self._collection_name}' holds "
                    f"{stored_dim}-dim vectors but {self._dimension} were configured"
                ),
                provider_name=self.get_provider_name(),
            )

        await self._wait_until_ready(collection)
        logger.info(
            "chromadb_collection_ready",
            collection=self._collection_name,
            dimension=self._dimension,
            remote=bool(self._host),
        )
        return collection

    def _build_client(self) -> Any:
        client_settings = chromadb.config.Settings(anonymized_telemetry=False)
        if self._host:
            return chromadb.HttpClient(host=self._host, port=self._port, settings=client_settings)
        return chromadb.PersistentClient(path=self._persist_directory, settings=client_settings)

    async def _wait_until_ready(self, collection: Any) -> None:
        """Poll ``count()`` until the collection answers or the timeout expires."""
        deadline = time.monotonic() + self._ready_timeout
        while True:
            try:
                collection.count()
                return
            except Exception as exc:
                if time.monotonic() >= deadline:
                    raise VectorStoreError(
                        message=f"Collection '{self._collection_name}' not ready: {exc}",
                        provider_name=self.get_provider_name(),
                    ) from exc
                logger.debug("chromadb_waiting_for_collection", error=str(exc))
                await asyncio.sleep(_READY_POLL_INTERVAL)

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, vectors: list[EmbeddingVector]) -> int:
        """Upsert *vectors* in sequential batches of 100."""
        if not vectors:
            return 0

        for vector in vectors:
            if len(vector.values) != self._dimension:
                raise VectorStoreError(
                    message=(
                        f"Vector {vector.id} has {len(vector.values)} values, "
                        f"expected {self._dimension}"
                    ),
                    provider_name=self.get_provider_name(),
                )

        collection = await self._get_collection()
        try:
            total_stored = 0
            for start in range(0, len(vectors), _UPSERT_BATCH_SIZE):
                batch = vectors[start : start + _UPSERT_BATCH_SIZE]
                collection.upsert(
                    ids=[v.id for v in batch],
                    embeddings=[v.values for v in batch],
                    documents=[v.metadata.content for v in batch],
                    metadatas=[v.metadata.model_dump(by_alias=True) for v in batch],
                )
                total_stored += len(batch)
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB upsert failed after {total_stored} vectors: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "chromadb_upsert",
            count=total_stored,
            batches=(len(vectors) + _UPSERT_BATCH_SIZE - 1) // _UPSERT_BATCH_SIZE,
        )
        return total_stored

    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalMatch]:
        """Return the *top_k* most similar vectors, best first."""
        collection = await self._get_collection()
        try:
            available = collection.count()
            if available == 0 or top_k <= 0:
                return []

            kwargs: dict[str, Any] = {
                "query_embeddings": [vector],
                "n_results": min(top_k, available),
                "include": ["metadatas", "distances"],
            }
            if filters:
                kwargs["where"] = filters
            results = collection.query(**kwargs)

            ids = results["ids"][0] if results["ids"] else []
            metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(ids)
            distances = results["distances"][0] if results["distances"] else [1.0] * len(ids)

            # Malformed stored metadata counts as a failed query.
            matches = [
                RetrievalMatch(
                    id=vector_id,
                    score=max(0.0, min(1.0, 1.0 - distance)),
                    metadata=VectorMetadata.model_validate(meta),
                )
                for vector_id, meta, distance in zip(ids, metadatas, distances, strict=True)
            ]
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        matches.sort(key=lambda m: m.score, reverse=True)

        logger.info(
            "chromadb_query",
            results_count=len(matches),
            top_score=matches[0].score if matches else 0.0,
            filtered=bool(filters),
        )
        return matches

    async def delete_by_file_id(self, file_id: str, keep_ids: set[str] | None = None) -> int:
        keep = keep_ids or set()
        collection = await self._get_collection()
        try:
            existing = collection.get(where={"fileId": file_id}, include=["metadatas"])
            ids = [vid for vid in existing["ids"] or [] if vid not in keep]
            if ids:
                collection.delete(ids=ids)
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB delete for file {file_id} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete_by_file_id", file_id=file_id, deleted_count=len(ids))
        return len(ids)

    async def get_stats(self) -> IndexStats:
        """Count vectors and distinct source files, paging through metadata."""
        collection = await self._get_collection()
        try:
            total = collection.count()
            file_ids: set[str] = set()
            offset = 0
            while offset < total:
                page = collection.get(include=["metadatas"], limit=_STATS_PAGE_SIZE, offset=offset)
                metadatas = page["metadatas"] or []
                if not metadatas:
                    break
                file_ids.update(m["fileId"] for m in metadatas if m and m.get("fileId"))
                offset += len(metadatas)
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB stats failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        return IndexStats(
            index_name=self._collection_name,
            dimension=self._dimension,
            total_vectors=total,
            total_files=len(file_ids),
        )

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Embedded mode is always available; server mode needs a host configured."""
        return bool(self._persist_directory or self._host)
