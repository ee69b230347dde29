"""FastAPI routes for driveRAG.

Endpoint                      Method  Description
────────────────────────────────────────────────────────────────────
/api/process-files            POST    Ingest a drive folder into the index
/api/chat                     POST    Stream an answer grounded in the index
/api/health                   GET     Health check + provider status
/api/index/stats              GET     Vector and file counts
/api/files/{file_id}          DELETE  Remove one file's vectors

Service dependencies are resolved from ``app.state`` (populated at startup
in ``main._build_all``) via ``Annotated[..., Depends(...)]`` aliases.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import ValidationError

from driverag.api.schemas import (
    ChatRequest,
    DeleteFileResponse,
    ErrorResponse,
    HealthResponse,
    ProcessFilesRequest,
    ProcessFilesResponse,
)
from driverag.config.settings import Settings
from driverag.interfaces.vector_store_provider import IVectorStoreProvider
from driverag.models.rag import IndexStats
from driverag.services.chat_service import ChatService
from driverag.services.ingestion.ingestion_service import IngestionService
from driverag.utils.errors import DriveRagError, InputValidationError, PipelineError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

router = APIRouter(prefix="/api")

_TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"


# ---------------------------------------------------------------------------
# Dependency injection helpers
# ---------------------------------------------------------------------------


def _get_settings(request: Request) -> Settings:
    """Return the application settings from application state."""
    return request.app.state.settings


def _get_ingestion_service(request: Request) -> IngestionService:
    """Return the ingestion service from application state."""
    return request.app.state.ingestion_service


def _get_chat_service(request: Request) -> ChatService:
    """Return the chat service from application state."""
    return request.app.state.chat_service


def _get_vector_store(request: Request) -> IVectorStoreProvider:
    """Return the vector store from application state."""
    return request.app.state.vector_store


SettingsDep = Annotated[Settings, Depends(_get_settings)]
IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
ChatDep = Annotated[ChatService, Depends(_get_chat_service)]
VectorStoreDep = Annotated[IVectorStoreProvider, Depends(_get_vector_store)]


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post(
    "/process-files",
    response_model=ProcessFilesResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ProcessFilesResponse}, 500: {"model": ProcessFilesResponse}},
    summary="Ingest every file in a drive folder",
)
async def process_files(
    ingestion: IngestionDep,
    settings: SettingsDep,
    body: Annotated[ProcessFilesRequest | None, Body()] = None,
) -> Any:
    """Run the ingestion pipeline synchronously and return its progress."""
    body = body or ProcessFilesRequest()
    folder_id = body.folder_id or settings.google_drive_folder_id
    if not folder_id:
        return _process_files_error(400, "Google Drive folder ID is required")

    try:
        result = await ingestion.run(folder_id, replace_existing=body.replace_existing)
    except PipelineError as exc:
        return _process_files_error(500, exc.message, exc.progress)

    return ProcessFilesResponse(success=True, message=result.message, progress=result.progress)


def _process_files_error(status_code: int, error: str, progress: Any = None) -> JSONResponse:
    body = ProcessFilesResponse(success=False, error=error, progress=progress)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


@router.post(
    "/chat",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"text/plain": {}}},
        400: {"model": ErrorResponse},
        429: {"content": {"text/plain": {}}},
        500: {"model": ErrorResponse},
    },
    summary="Stream an answer to a chat message",
)
async def chat(request: Request, chat_service: ChatDep, settings: SettingsDep) -> Any:
    """Answer ``{"message": ...}`` as a chunked plain-text stream.

    The body is parsed by hand so that a missing, non-string or blank
    message always yields the same 400 body.
    """
    try:
        payload = await request.json()
        message = ChatRequest.model_validate(payload).message
        fragments = await chat_service.stream_answer(message)
    except (ValueError, ValidationError, InputValidationError):
        return JSONResponse(status_code=400, content={"error": "Message is required"})
    except RateLimitError as exc:
        logger.warning("chat_rate_limited", error=str(exc))
        return PlainTextResponse(settings.chat_busy_message, status_code=429, media_type=_TEXT_MEDIA_TYPE)
    except Exception as exc:
        logger.exception("chat_failed", error=str(exc))
        return JSONResponse(status_code=500, content={"error": "Failed to process chat message"})

    return StreamingResponse(_relay(fragments), media_type=_TEXT_MEDIA_TYPE)


async def _relay(fragments: AsyncIterator[str]) -> AsyncIterator[str]:
    """Forward fragments; a mid-stream failure ends the response early."""
    try:
        async for fragment in fragments:
            yield fragment
    except DriveRagError as exc:
        logger.error("chat_stream_failed", error=str(exc))
    finally:
        aclose = getattr(fragments, "aclose", None)
        if aclose is not None:
            await aclose()


# ---------------------------------------------------------------------------
# Index management
# ---------------------------------------------------------------------------


@router.get(
    "/index/stats",
    response_model=IndexStats,
    summary="Vector index statistics",
)
async def index_stats(vector_store: VectorStoreDep) -> IndexStats:
    return await vector_store.get_stats()


@router.delete(
    "/files/{file_id}",
    response_model=DeleteFileResponse,
    summary="Remove every vector of one drive file",
)
async def delete_file(file_id: str, vector_store: VectorStoreDep) -> DeleteFileResponse:
    deleted = await vector_store.delete_by_file_id(file_id)
    return DeleteFileResponse(file_id=file_id, deleted=deleted)


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    vector_store = getattr(request.app.state, "vector_store", None)
    if vector_store is not None:
        try:
            stats = await vector_store.get_stats()
            providers["index_vectors"] = stats.total_vectors
            providers["index"] = True
        except DriveRagError as exc:
            logger.warning("health_index_unavailable", error=str(exc))
            providers["index"] = False

    cache = getattr(request.app.state, "embedding_cache", None)
    if cache is not None:
        providers["embedding_cache"] = cache.stats()

    critical = ("drive", "embedding", "llm", "index")
    if all(providers.get(name, False) for name in critical):
        status = "healthy"
    elif providers.get("index", False):
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(status=status, version="0.1.0", providers=providers)
