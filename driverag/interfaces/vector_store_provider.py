"""Abstract base class for vector-store service providers.

Defines the contract for storing, querying, and deleting embedding records.
The concrete adapter wraps ChromaDB; Qdrant, Pinecone or any other vector
database could be swapped in behind the same interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from driverag.models.rag import EmbeddingVector, IndexStats, RetrievalMatch


# Concrete implementation: ChromaDBProvider (driverag/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by the RAG pipeline.

    **Supported filter syntax** (passed via *filters* in :meth:`query`):
    equality on any metadata key, e.g. ``{"fileId": "abc123"}`` to restrict
    results to one source file.
    """

    @abstractmethod
    async def upsert(self, vectors: list[EmbeddingVector]) -> int:
        """Insert or update *vectors*, keyed by their ``id``.

        Returns
        -------
        int
            The number of vectors written.

        Raises
        ------
        driverag.utils.errors.VectorStoreError
            If a vector has the wrong dimension or the write fails.
        """

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalMatch]:
        """Return the *top_k* nearest stored vectors to *vector*.

        Returns
        -------
        list[RetrievalMatch]
            Matches ranked by similarity score (descending), with metadata.

        Raises
        ------
        driverag.utils.errors.VectorStoreError
            If the query fails.
        """

    @abstractmethod
    async def delete_by_file_id(self, file_id: str, keep_ids: set[str] | None = None) -> int:
        """Delete every vector whose metadata ``fileId`` equals *file_id*.

        Ids listed in *keep_ids* survive, which lets a re-ingested file drop
        only the chunks its new version no longer has.

        Returns
        -------
        int
            The number of vectors deleted.
        """

    @abstractmethod
    async def get_stats(self) -> IndexStats:
        """Return aggregate statistics about the index."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this vector store."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store can be reached."""
