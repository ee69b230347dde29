"""Utility modules for driveRAG.

- **errors** -- Domain exception hierarchy rooted at DriveRagError; fallback
  loops key off RateLimitError, the ingestion pipeline off PipelineError.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

# -- Domain exception hierarchy --------------------------------------------
from driverag.utils.errors import (
    AllModelsBusyError,
    ConfigurationError,
    DriveError,
    DriveRagError,
    EmbeddingError,
    ExtractionError,
    InputValidationError,
    LLMError,
    PipelineError,
    ProviderError,
    RateLimitError,
    VectorStoreError,
)

# -- Structured logging setup ----------------------------------------------
from driverag.utils.logging import configure_logging, get_logger

__all__ = [
    "AllModelsBusyError",
    "ConfigurationError",
    "DriveError",
    "DriveRagError",
    "EmbeddingError",
    "ExtractionError",
    "InputValidationError",
    "LLMError",
    "PipelineError",
    "ProviderError",
    "RateLimitError",
    "VectorStoreError",
    "configure_logging",
    "get_logger",
]
