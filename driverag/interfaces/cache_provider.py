"""Abstract base class for cache service providers.

Defines the key-value contract used by the embedding service to remember
recent vectors.  Implementations may use an in-memory dict, Redis, or any
other storage backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ICacheProvider(ABC):
    """Contract for key-value cache services.

    All operations are async to allow for network-backed stores (e.g. Redis)
    without blocking the event loop.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value stored under *key*, or ``None`` if missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store *value* under *key* using the cache's configured expiry."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*; a no-op if it is absent."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry."""
