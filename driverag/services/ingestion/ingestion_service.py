"""Orchestrator for drive-folder ingestion.

Pipeline stages: **fetch -> extract -> chunk -> embed -> store**.

The :class:`IngestionService` coordinates five collaborators (drive
provider, text extractor, chunker, embedding service, vector store)
without any of them knowing about each other.  Files are processed one at
a time; a failure inside one file is recorded in
``ProcessingProgress.failed_files`` and the run moves on.  Only listing the
folder and the final upsert can abort a run, and they do so by raising
:class:`PipelineError` with the progress accumulated so far.

Vectors from every file are collected in memory and written with a single
upsert at the end, so an aborted run never leaves a half-written folder
in the index.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, NoReturn

import structlog

from driverag.models.pipeline import IngestionRunResult, ProcessingProgress, ProcessingStatus
from driverag.models.rag import EmbeddingVector, VectorMetadata
from driverag.utils.errors import DriveRagError, PipelineError

if TYPE_CHECKING:
    from driverag.interfaces.drive_provider import IDriveProvider
    from driverag.interfaces.vector_store_provider import IVectorStoreProvider
    from driverag.models.documents import DriveFile
    from driverag.pipeline.progress_tracker import ProgressTracker
    from driverag.services.embedding_service import EmbeddingService
    from driverag.services.ingestion.chunker import TextChunker
    from driverag.services.ingestion.text_extractor import TextExtractor

logger = structlog.get_logger(logger_name=__name__)


class IngestionService:
    """Runs one ingestion pass over a drive folder.

    Parameters
    ----------
    drive:
        Lists, downloads and exports drive files.
    extractor:
        Turns downloaded bytes into text.
    chunker:
        Splits text into overlapping chunks.
    embedding_service:
        Embeds chunks with cache and model fallback.
    vector_store:
        Receives the final upsert.
    tracker:
        Optional progress tracker; every status change is published to it.
    metadata_content_limit:
        Maximum characters of chunk text stored in vector metadata.
    """

    def __init__(
        self,
        drive: IDriveProvider,
        extractor: TextExtractor,
        chunker: TextChunker,
        embedding_service: EmbeddingService,
        vector_store: IVectorStoreProvider,
        tracker: ProgressTracker | None = None,
        metadata_content_limit: int = 1000,
    ) -> None:
        self._drive = drive
        self._extractor = extractor
        self._chunker = chunker
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._tracker = tracker
        self._metadata_content_limit = metadata_content_limit

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        folder_id: str,
        *,
        run_id: str | None = None,
        replace_existing: bool = False,
    ) -> IngestionRunResult:
        """Ingest every file in *folder_id*.

        Parameters
        ----------
        folder_id:
            Drive folder to list.
        run_id:
            Key under which progress is published.  Generated when omitted.
        replace_existing:
            After the upsert, delete each processed file's old vectors that
            the new version did not overwrite.

        Returns
        -------
        IngestionRunResult
            The completed progress and a human-readable message.

        Raises
        ------
        PipelineError
            If the folder cannot be listed or the vectors cannot be stored.
            ``exc.progress`` holds the counters at the time of failure.
        """
        run_id = run_id or uuid.uuid4().hex
        start = time.monotonic()
        progress = ProcessingProgress(status=ProcessingStatus.FETCHING)

        try:
            await self._publish(run_id, progress)
            logger.info("ingestion_started", run_id=run_id, folder_id=folder_id)

            try:
                files = await self._drive.list_files(folder_id)
            except DriveRagError as exc:
                await self._fail(run_id, progress, f"Failed to list folder {folder_id}: {exc.message}", exc)

            progress.total_files = len(files)
            if not files:
                progress.status = ProcessingStatus.COMPLETED
                await self._publish(run_id, progress)
                logger.info("ingestion_empty_folder", run_id=run_id, folder_id=folder_id)
                return IngestionRunResult(
                    run_id=run_id,
                    message="No files found in the folder",
                    progress=progress.model_copy(deep=True),
                )

            vectors: list[EmbeddingVector] = []
            new_ids_by_file: dict[str, set[str]] = {}

            for drive_file in files:
                progress.current_file = drive_file.name
                try:
                    file_vectors = await self._process_file(run_id, drive_file, progress)
                except DriveRagError as exc:
                    logger.warning(
                        "file_processing_failed",
                        run_id=run_id,
                        file_id=drive_file.id,
                        file_name=drive_file.name,
                        error=str(exc),
                    )
                    progress.failed_files = [*progress.failed_files, drive_file.name]
                else:
                    vectors.extend(file_vectors)
                    if file_vectors:
                        new_ids_by_file[drive_file.id] = {v.id for v in file_vectors}
                progress.files_processed += 1
                await self._publish(run_id, progress)

            progress.current_file = None

            if vectors:
                progress.status = ProcessingStatus.STORING
                await self._publish(run_id, progress)
                try:
                    progress.vectors_stored = await self._vector_store.upsert(vectors)
                    # Stale chunks go only after the new ones are written.
                    if replace_existing:
                        for file_id, new_ids in new_ids_by_file.items():
                            await self._vector_store.delete_by_file_id(file_id, keep_ids=new_ids)
                except DriveRagError as exc:
                    await self._fail(run_id, progress, f"Failed to store vectors: {exc.message}", exc)

            progress.status = ProcessingStatus.COMPLETED
            await self._publish(run_id, progress)

            logger.info(
                "ingestion_complete",
                run_id=run_id,
                files_processed=progress.files_processed,
                failed_files=len(progress.failed_files),
                chunks_created=progress.chunks_created,
                vectors_stored=progress.vectors_stored,
                elapsed_s=round(time.monotonic() - start, 2),
            )
            return IngestionRunResult(
                run_id=run_id,
                message=f"Successfully processed {progress.files_processed} files",
                progress=progress.model_copy(deep=True),
            )
        finally:
            if self._tracker is not None:
                self._tracker.discard(run_id)

    # ------------------------------------------------------------------
    # Per-file stages
    # ------------------------------------------------------------------

    async def _process_file(
        self,
        run_id: str,
        drive_file: DriveFile,
        progress: ProcessingProgress,
    ) -> list[EmbeddingVector]:
        """Extract, chunk and embed one file; return its vectors."""
        progress.status = ProcessingStatus.EXTRACTING
        await self._publish(run_id, progress)
        text = await self._extract_text(drive_file)
        if not text.strip():
            logger.info("file_empty", run_id=run_id, file_name=drive_file.name)
            return []

        progress.status = ProcessingStatus.CHUNKING
        await self._publish(run_id, progress)
        chunks = self._chunker.chunk(text, drive_file.id, drive_file.name)
        progress.chunks_created += len(chunks)
        if not chunks:
            return []

        progress.status = ProcessingStatus.EMBEDDING
        await self._publish(run_id, progress)
        embeddings = await self._embedding_service.embed_batch(chunks)
        progress.embeddings_generated += len(embeddings)

        timestamp = datetime.now(timezone.utc).isoformat()
        vectors = [
            EmbeddingVector(
                id=chunk.id,
                values=embeddings[chunk.id],
                metadata=VectorMetadata(
                    file_name=drive_file.name,
                    file_id=drive_file.id,
                    chunk_index=chunk.index,
                    content=chunk.content[: self._metadata_content_limit],
                    timestamp=timestamp,
                ),
            )
            for chunk in chunks
        ]
        logger.info(
            "file_processed",
            run_id=run_id,
            file_name=drive_file.name,
            chunks=len(chunks),
        )
        return vectors

    async def _extract_text(self, drive_file: DriveFile) -> str:
        if drive_file.is_native_export():
            return await self._drive.export_as_text(drive_file.id, drive_file.mime_type)
        content = await self._drive.download(drive_file.id)
        return self._extractor.extract(content, drive_file.mime_type, drive_file.name)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _publish(self, run_id: str, progress: ProcessingProgress) -> None:
        if self._tracker is not None:
            await self._tracker.update(run_id, progress)

    async def _fail(
        self,
        run_id: str,
        progress: ProcessingProgress,
        message: str,
        cause: DriveRagError,
    ) -> NoReturn:
        """Mark the run failed, publish, and raise :class:`PipelineError`."""
        progress.status = ProcessingStatus.FAILED
        progress.error = message
        await self._publish(run_id, progress)
        logger.error("ingestion_failed", run_id=run_id, error=message)
        raise PipelineError(
            message=message,
            provider_name=cause.provider_name,
            progress=progress.model_copy(deep=True),
        ) from cause
