"""Public interface definitions for all external service providers.

Every external API in driveRAG is reached through the abstract base classes
in this package.  Concrete adapters implement them and are injected at
runtime from ``driverag/main.py`` (web app) or ``driverag/cli/`` (CLI), so
services never import an SDK directly and tests can pass in-memory fakes.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementation (driverag/providers/)
    ─────────────────────────────────────────────────────────────────────
    IDriveProvider             →  GoogleDriveProvider
    IEmbeddingProvider         →  OpenAIEmbeddingProvider
    ILLMProvider               →  OpenAILLMProvider
    IVectorStoreProvider       →  ChromaDBProvider
    ICacheProvider             →  MemoryCacheProvider
"""

from driverag.interfaces.cache_provider import ICacheProvider
from driverag.interfaces.drive_provider import IDriveProvider
from driverag.interfaces.embedding_provider import EmbeddingRole, IEmbeddingProvider
from driverag.interfaces.llm_provider import ILLMProvider
from driverag.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "EmbeddingRole",
    "ICacheProvider",
    "IDriveProvider",
    "IEmbeddingProvider",
    "ILLMProvider",
    "IVectorStoreProvider",
]
