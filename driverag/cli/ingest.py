# =============================================================================
# driverag/cli/ingest.py -- CLI for the driveRAG index
# =============================================================================
#
# Operator tool for the same pipeline the HTTP API exposes, without running
# the web server.
#
# Supported subcommands:
#
#   ingest -- Index every file in a Google Drive folder (live progress)
#   stats  -- Display index statistics (vector and file counts)
#   delete -- Remove every vector of one drive file
#   ask    -- Ask a question and stream the answer to stdout
#
# Usage examples:
#   python -m driverag.cli ingest --folder-id 1AbC... --replace
#   python -m driverag.cli stats
#   python -m driverag.cli delete --file-id 1XyZ...
#   python -m driverag.cli ask "What is the refund policy?"
#
# Heavy imports (openai, chromadb, PyMuPDF) are deferred inside functions so
# `--help` stays fast.
# =============================================================================

"""Standalone CLI for building and querying the driveRAG index.

Usage::

    python -m driverag.cli ingest [--folder-id ID] [--replace]
    python -m driverag.cli stats
    python -m driverag.cli delete --file-id ID
    python -m driverag.cli ask "question"
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import uuid

from driverag.config.settings import Settings
from driverag.utils.errors import DriveRagError, PipelineError, RateLimitError
from driverag.utils.logging import configure_logging


def _build_vector_store(app_settings: Settings):  # noqa: ANN202
    from driverag.providers.vector_store.chromadb_provider import ChromaDBProvider

    return ChromaDBProvider(
        dimension=app_settings.embedding_dimension,
        persist_directory=app_settings.chroma_persist_dir,
        collection_name=app_settings.vector_index_name,
        host=app_settings.chroma_host,
        port=app_settings.chroma_port,
        ready_timeout=app_settings.index_ready_timeout,
    )


def _build_embedding_service(app_settings: Settings):  # noqa: ANN202
    from driverag.providers.cache.memory_cache import MemoryCacheProvider
    from driverag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
    from driverag.services.embedding_service import EmbeddingService

    return EmbeddingService(
        provider=OpenAIEmbeddingProvider(settings=app_settings),
        cache=MemoryCacheProvider(
            max_size=app_settings.embedding_cache_size,
            ttl=app_settings.embedding_cache_ttl,
        ),
        inter_call_delay=app_settings.embedding_delay_seconds,
        cache_key_chars=app_settings.embedding_cache_key_chars,
    )


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, app_settings: Settings) -> int:
    """Run one ingestion pass and print progress as it happens."""
    from driverag.pipeline.progress_tracker import ProgressTracker
    from driverag.providers.drive.google_drive_provider import GoogleDriveProvider
    from driverag.services.ingestion.chunker import TextChunker
    from driverag.services.ingestion.ingestion_service import IngestionService
    from driverag.services.ingestion.text_extractor import TextExtractor

    folder_id = args.folder_id or app_settings.google_drive_folder_id
    if not folder_id:
        print("Error: pass --folder-id or set GOOGLE_DRIVE_FOLDER_ID.", file=sys.stderr)
        return 1

    tracker = ProgressTracker()
    run_id = uuid.uuid4().hex

    def _print_progress(_run_id, progress) -> None:  # noqa: ANN001
        current = f" - {progress.current_file}" if progress.current_file else ""
        print(
            f"  [{progress.status.value:<10}] "
            f"{progress.files_processed}/{progress.total_files} files, "
            f"{progress.chunks_created} chunks{current}"
        )

    tracker.register_listener(run_id, _print_progress)

    drive = GoogleDriveProvider(settings=app_settings)
    service = IngestionService(
        drive=drive,
        extractor=TextExtractor(),
        chunker=TextChunker(
            max_chunk_size=app_settings.chunk_max_size,
            overlap_size=app_settings.chunk_overlap,
        ),
        embedding_service=_build_embedding_service(app_settings),
        vector_store=_build_vector_store(app_settings),
        tracker=tracker,
        metadata_content_limit=app_settings.metadata_content_limit,
    )

    print(f"Ingesting drive folder: {folder_id}")
    try:
        result = await service.run(folder_id, run_id=run_id, replace_existing=args.replace)
    except PipelineError as exc:
        print(f"\nIngestion failed: {exc.message}", file=sys.stderr)
        return 1
    finally:
        await drive.aclose()

    progress = result.progress
    print(f"\n{result.message}")
    print(f"  Chunks created:   {progress.chunks_created}")
    print(f"  Vectors stored:   {progress.vectors_stored}")
    if progress.failed_files:
        print(f"  Failed files:     {', '.join(progress.failed_files)}")
    return 0


async def _handle_stats(app_settings: Settings) -> int:
    """Display index statistics."""
    stats = await _build_vector_store(app_settings).get_stats()

    print("Index Statistics")
    print("=" * 40)
    print(f"  Index:            {stats.index_name}")
    print(f"  Dimension:        {stats.dimension}")
    print(f"  Total vectors:    {stats.total_vectors}")
    print(f"  Total files:      {stats.total_files}")
    return 0


async def _handle_delete(args: argparse.Namespace, app_settings: Settings) -> int:
    deleted = await _build_vector_store(app_settings).delete_by_file_id(args.file_id)
    print(f"Deleted {deleted} vectors for file {args.file_id}.")
    return 0


async def _handle_ask(args: argparse.Namespace, app_settings: Settings) -> int:
    """Stream an answer to stdout."""
    from driverag.providers.llm.openai_provider import OpenAILLMProvider
    from driverag.services.chat_service import ChatService

    service = ChatService(
        embedding_service=_build_embedding_service(app_settings),
        vector_store=_build_vector_store(app_settings),
        llm=OpenAILLMProvider(settings=app_settings),
        top_k=app_settings.retrieval_top_k,
        fragment_timeout=app_settings.generation_timeout,
    )

    try:
        fragments = await service.stream_answer(args.question)
    except RateLimitError:
        print(app_settings.chat_busy_message, file=sys.stderr)
        return 2

    async for fragment in fragments:
        sys.stdout.write(fragment)
        sys.stdout.flush()
    sys.stdout.write("\n")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the driveRAG CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m driverag.cli",
        description="Build and query the driveRAG document index.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Index a Google Drive folder")
    ingest_parser.add_argument(
        "--folder-id",
        dest="folder_id",
        default=None,
        help="Drive folder ID (default: GOOGLE_DRIVE_FOLDER_ID)",
    )
    ingest_parser.add_argument(
        "--replace",
        action="store_true",
        help="Delete each file's existing vectors before storing new ones",
    )

    # -- stats --
    subparsers.add_parser("stats", help="Display index statistics")

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Remove one file's vectors")
    delete_parser.add_argument("--file-id", dest="file_id", required=True, help="Drive file ID")

    # -- ask --
    ask_parser = subparsers.add_parser("ask", help="Ask a question about the indexed documents")
    ask_parser.add_argument("question", help="The question to answer")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parses the subcommand, loads Settings from the environment / .env file
    and dispatches to the matching handler.  Exits 1 on application errors.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level, json_output=False)

    handlers = {
        "ingest": lambda: _handle_ingest(args, app_settings),
        "stats": lambda: _handle_stats(app_settings),
        "delete": lambda: _handle_delete(args, app_settings),
        "ask": lambda: _handle_ask(args, app_settings),
    }

    try:
        exit_code = asyncio.run(handlers[args.command]())
    except DriveRagError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
