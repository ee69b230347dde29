"""driveRAG domain models -- re-exports all public model classes.

The models are organized across three submodules:
    - documents.py  -- Drive files and the text chunks cut from them
    - pipeline.py   -- Ingestion run status and progress counters
    - rag.py        -- Embedding vectors, retrieval matches, index stats
"""

from __future__ import annotations

from driverag.models.documents import NATIVE_EXPORT_TYPES, DriveFile, TextChunk
from driverag.models.pipeline import IngestionRunResult, ProcessingProgress, ProcessingStatus
from driverag.models.rag import EmbeddingVector, IndexStats, RetrievalMatch, VectorMetadata

__all__ = [
    "NATIVE_EXPORT_TYPES",
    "DriveFile",
    "EmbeddingVector",
    "IndexStats",
    "IngestionRunResult",
    "ProcessingProgress",
    "ProcessingStatus",
    "RetrievalMatch",
    "TextChunk",
    "VectorMetadata",
]
