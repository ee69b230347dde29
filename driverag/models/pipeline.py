"""Ingestion run state models.

:class:`ProcessingProgress` is the single mutable model in the package: one
instance lives for the duration of one ingestion run, the pipeline mutates
its counters in place, and the :class:`~driverag.pipeline.progress_tracker.ProgressTracker`
receives deep copies so listeners never observe a half-updated object.

    PENDING → FETCHING → EXTRACTING → CHUNKING → EMBEDDING → STORING → COMPLETED
                               (any state) → FAILED
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProcessingStatus(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """Phases of an ingestion run."""

    PENDING = "pending"
    FETCHING = "fetching"        # Listing the drive folder
    EXTRACTING = "extracting"    # Downloading / exporting and decoding one file
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    STORING = "storing"          # Final upsert of every collected vector
    COMPLETED = "completed"
    FAILED = "failed"


class ProcessingProgress(BaseModel):
    """Counters and status for one ingestion run.

    Serialised with camelCase keys (``filesProcessed``, ``currentFile``)
    for the HTTP response.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    status: ProcessingStatus = ProcessingStatus.PENDING
    files_processed: int = Field(default=0, ge=0)
    total_files: int = Field(default=0, ge=0)
    chunks_created: int = Field(default=0, ge=0)
    embeddings_generated: int = Field(default=0, ge=0)
    vectors_stored: int = Field(default=0, ge=0)
    current_file: str | None = None
    error: str | None = None
    failed_files: list[str] = Field(default_factory=list)


class IngestionRunResult(BaseModel):
    """Final outcome of a successful ingestion run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    message: str
    progress: ProcessingProgress
