"""driveRAG API layer: routes, schemas, and middleware."""

from driverag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    register_exception_handlers,
)
from driverag.api.routes import router
from driverag.api.schemas import (
    ChatRequest,
    DeleteFileResponse,
    ErrorResponse,
    HealthResponse,
    ProcessFilesRequest,
    ProcessFilesResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "register_exception_handlers",
    "router",
    "ChatRequest",
    "DeleteFileResponse",
    "ErrorResponse",
    "HealthResponse",
    "ProcessFilesRequest",
    "ProcessFilesResponse",
]
