"""Vector-side data models for the driveRAG knowledge base.

Defines the records written to and read back from the vector store:

    1. INGESTION: each :class:`~driverag.models.documents.TextChunk` is
       embedded and wrapped in an :class:`EmbeddingVector` whose metadata
       carries the file name, file id, chunk index and (truncated) content.
    2. RETRIEVAL: similarity search returns :class:`RetrievalMatch` objects
       ordered by descending cosine similarity; their metadata is what ends
       up in the chat prompt.

Metadata is stored with camelCase keys (``fileId``, ``chunkIndex``) so that
vector-store filters such as ``{"fileId": "..."}`` work on the stored data.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class VectorMetadata(BaseModel):
    """Metadata attached to every stored vector."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    file_name: str
    file_id: str
    chunk_index: int = Field(ge=0)
    content: str = Field(description="Chunk text, truncated for storage.")
    timestamp: str = Field(description="ISO-8601 UTC time the vector was built.")


class EmbeddingVector(BaseModel):
    """An embedded chunk ready for upsert.

    ``id`` equals the source chunk id.  The embedding service guarantees
    ``len(values)`` equals the contracted dimension; the vector store checks
    it again before writing.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    values: list[float] = Field(min_length=1)
    metadata: VectorMetadata


class RetrievalMatch(BaseModel):
    """A single similarity-search hit, used to build prompt context."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float = Field(ge=0.0, le=1.0, description="Cosine similarity (1.0 = identical).")
    metadata: VectorMetadata


class IndexStats(BaseModel):
    """Aggregate statistics about the vector index."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    index_name: str
    dimension: int = Field(ge=0)
    total_vectors: int = Field(default=0, ge=0)
    total_files: int = Field(default=0, ge=0)
