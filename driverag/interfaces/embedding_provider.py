"""Abstract base class for text-embedding service providers.

Defines the contract for turning one text into one embedding vector with a
named model.  The provider exposes its ordered model list; retries, caching
and model fallback live one level up in
:class:`~driverag.services.embedding_service.EmbeddingService`, so every
provider only has to classify failures correctly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum


class EmbeddingRole(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """What an embedding will be used for.

    Retrieval models may place queries and documents in asymmetric spaces,
    so the role is passed through to the provider and also separates cache
    entries.
    """

    DOCUMENT = "document"
    QUERY = "query"


# Concrete implementation: OpenAIEmbeddingProvider (driverag/providers/embedding/)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the RAG pipeline."""

    @abstractmethod
    async def embed_single(
        self,
        text: str,
        *,
        model: str,
        role: EmbeddingRole = EmbeddingRole.DOCUMENT,
    ) -> list[float]:
        """Generate an embedding vector for *text* with a specific *model*.

        Parameters
        ----------
        text:
            The text to embed.
        model:
            One of the identifiers returned by :meth:`get_models`.
        role:
            Whether *text* is a stored document or a search query.

        Returns
        -------
        list[float]
            The raw vector returned by the service.  Length validation is
            the caller's job.

        Raises
        ------
        driverag.utils.errors.RateLimitError
            If the service rejected the call for capacity reasons.
        driverag.utils.errors.EmbeddingError
            For any other failure.
        """

    @abstractmethod
    def get_models(self) -> list[str]:
        """Return the model identifiers to try, in priority order."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the contracted dimensionality of every vector.

        Must match the dimension the vector store was created with.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""
