"""Custom exception hierarchy for driveRAG.

All application exceptions inherit from :class:`DriveRagError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "google-drive", "chromadb", "openai-compatible")
caused the failure.

The hierarchy is organized by how callers react to the failure:

    DriveRagError  (base -- catch-all for any driveRAG error)
    +-- InputValidationError     (malformed request input, never retried)
    +-- RateLimitError           (provider capacity error, triggers fallback)
    |   +-- AllModelsBusyError   (every generation model was rate-limited)
    +-- ProviderError            (any other upstream failure)
    |   +-- DriveError
    |   +-- EmbeddingError
    |   +-- VectorStoreError
    |   +-- LLMError
    +-- ExtractionError          (one document could not be turned into text)
    +-- PipelineError            (ingestion run aborted, carries progress)
    +-- ConfigurationError       (startup / missing config)

Model fallback loops catch :class:`RateLimitError` and advance; the
ingestion pipeline catches :class:`DriveRagError` per file and only lets
:class:`PipelineError` end a run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from driverag.models.pipeline import ProcessingProgress


class DriveRagError(Exception):
    """Base exception for all driveRAG errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[chromadb] Upsert failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Request errors
# ---------------------------------------------------------------------------

class InputValidationError(DriveRagError):
    """Raised when request input is missing or has the wrong type."""

    def __init__(
        self,
        message: str = "Invalid input",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class RateLimitError(DriveRagError):
    """Raised when an API rate limit is exceeded.

    Embedding and generation callers advance to the next model in their
    fallback list when this is caught.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AllModelsBusyError(RateLimitError):
    """Raised when every model in a fallback list answered with a rate limit."""

    def __init__(
        self,
        message: str = "All models are rate-limited",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderError(DriveRagError):
    """Raised when an external service fails for a reason other than rate limiting."""

    def __init__(
        self,
        message: str = "External service call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DriveError(ProviderError):
    """Raised when listing, downloading, or exporting drive files fails."""

    def __init__(
        self,
        message: str = "Drive request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(ProviderError):
    """Raised when no embedding model produced a valid vector."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorStoreError(ProviderError):
    """Raised when a vector-store operation fails."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(ProviderError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Ingestion errors
# ---------------------------------------------------------------------------

class ExtractionError(DriveRagError):
    """Raised when a single document cannot be converted to plain text."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PipelineError(DriveRagError):
    """Raised when an ingestion run has to be aborted.

    ``progress`` holds whatever had accumulated before the failure so the
    HTTP layer can still report it.
    """

    def __init__(
        self,
        message: str = "Ingestion pipeline failed",
        provider_name: str | None = None,
        progress: ProcessingProgress | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._progress = progress

    @property
    def progress(self) -> ProcessingProgress | None:
        return self._progress


class ConfigurationError(DriveRagError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
