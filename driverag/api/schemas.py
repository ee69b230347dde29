"""Pydantic request/response schemas for the driveRAG API.

Request and response bodies use camelCase keys (``folderId``,
``replaceExisting``, ``filesProcessed``) to match the browser client;
Python code uses the snake_case field names.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr
from pydantic.alias_generators import to_camel

from driverag.models.pipeline import ProcessingProgress


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProcessFilesRequest(_CamelModel):
    """Start an ingestion run.  An omitted folder falls back to configuration."""

    folder_id: str | None = None
    replace_existing: bool = Field(
        default=False,
        description="Delete each processed file's previous vectors before storing new ones.",
    )


class ProcessFilesResponse(_CamelModel):
    """Outcome of an ingestion run (``success=False`` on errors)."""

    success: bool
    message: str | None = None
    error: str | None = None
    progress: ProcessingProgress | None = None


class ChatRequest(BaseModel):
    """A chat message.  Non-string values are rejected, not coerced."""

    message: StrictStr


class DeleteFileResponse(_CamelModel):
    file_id: str
    deleted: int = Field(ge=0, description="Number of vectors removed.")


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
