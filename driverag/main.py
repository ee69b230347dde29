"""driveRAG FastAPI application entry point.

Wires together all providers, services, and routes via dependency
injection.  Loads configuration from the environment and ``.env``,
configures structured logging, and exposes ``app`` for uvicorn.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from driverag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    register_exception_handlers,
)
from driverag.api.routes import router as api_router
from driverag.config.settings import Settings
from driverag.pipeline.progress_tracker import ProgressTracker
from driverag.providers.cache.memory_cache import MemoryCacheProvider
from driverag.providers.drive.google_drive_provider import GoogleDriveProvider
from driverag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from driverag.providers.llm.openai_provider import OpenAILLMProvider
from driverag.providers.vector_store.chromadb_provider import ChromaDBProvider
from driverag.services.chat_service import ChatService
from driverag.services.embedding_service import EmbeddingService
from driverag.services.ingestion.chunker import TextChunker
from driverag.services.ingestion.ingestion_service import IngestionService
from driverag.services.ingestion.text_extractor import TextExtractor
from driverag.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=app_settings.google_drive_timeout)

    # -- Providers --
    drive = GoogleDriveProvider(settings=app_settings, http_client=http_client)
    embedding_provider = OpenAIEmbeddingProvider(settings=app_settings)
    llm = OpenAILLMProvider(settings=app_settings)
    vector_store = ChromaDBProvider(
        dimension=app_settings.embedding_dimension,
        persist_directory=app_settings.chroma_persist_dir,
        collection_name=app_settings.vector_index_name,
        host=app_settings.chroma_host,
        port=app_settings.chroma_port,
        ready_timeout=app_settings.index_ready_timeout,
    )
    cache = MemoryCacheProvider(
        max_size=app_settings.embedding_cache_size,
        ttl=app_settings.embedding_cache_ttl,
    )

    # -- Services --
    embedding_service = EmbeddingService(
        provider=embedding_provider,
        cache=cache,
        inter_call_delay=app_settings.embedding_delay_seconds,
        cache_key_chars=app_settings.embedding_cache_key_chars,
    )
    progress_tracker = ProgressTracker()
    ingestion_service = IngestionService(
        drive=drive,
        extractor=TextExtractor(),
        chunker=TextChunker(
            max_chunk_size=app_settings.chunk_max_size,
            overlap_size=app_settings.chunk_overlap,
        ),
        embedding_service=embedding_service,
        vector_store=vector_store,
        tracker=progress_tracker,
        metadata_content_limit=app_settings.metadata_content_limit,
    )
    chat_service = ChatService(
        embedding_service=embedding_service,
        vector_store=vector_store,
        llm=llm,
        top_k=app_settings.retrieval_top_k,
        fragment_timeout=app_settings.generation_timeout,
    )

    # -- Provider registry for /health --
    provider_registry: dict[str, bool] = {
        "drive": drive.is_available(),
        "embedding": embedding_provider.is_available(),
        "llm": llm.is_available(),
        "vector_store": vector_store.is_available(),
    }

    return {
        "settings": app_settings,
        "http_client": http_client,
        "progress_tracker": progress_tracker,
        "provider_registry": provider_registry,
        "vector_store": vector_store,
        "embedding_cache": cache,
        "ingestion_service": ingestion_service,
        "chat_service": chat_service,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version="0.1.0",
        environment=settings.app_env,
        providers=components["provider_registry"],
    )

    yield

    # -- Shutdown: close shared httpx client --
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="driveRAG API",
        version="0.1.0",
        description=(
            "Index the documents of a Google Drive folder into a vector store "
            "and chat with them through a streamed, retrieval-augmented answer."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)
    register_exception_handlers(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "driverag.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
