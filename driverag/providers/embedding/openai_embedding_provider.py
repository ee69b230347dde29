"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
The default base URL is Google's OpenAI-compatible Gemini endpoint, so the
same adapter serves ``text-embedding-004`` and any OpenAI-compatible
service (OpenAI itself, TogetherAI, a local gateway) by changing settings.

Rate-limit responses are surfaced as :class:`RateLimitError` so the
embedding service can tell them apart from hard failures.
"""

from __future__ import annotations

import openai
import structlog

from driverag.config.settings import Settings
from driverag.interfaces.embedding_provider import EmbeddingRole, IEmbeddingProvider
from driverag.utils.errors import EmbeddingError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Models are tried by the caller in the order given by
    ``EMBEDDING_MODELS``.  Query and document inputs can be prefixed
    differently (``EMBEDDING_QUERY_PREFIX`` / ``EMBEDDING_DOCUMENT_PREFIX``)
    for models trained with asymmetric task prefixes.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.google_ai_api_key
        self._base_url = settings.genai_base_url
        self._client: openai.AsyncOpenAI | None = None
        self._models = settings.get_embedding_models()
        self._dimension = settings.embedding_dimension
        self._prefixes = {
            EmbeddingRole.QUERY: settings.embedding_query_prefix,
            EmbeddingRole.DOCUMENT: settings.embedding_document_prefix,
        }

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed_single(
        self,
        text: str,
        *,
        model: str,
        role: EmbeddingRole = EmbeddingRole.DOCUMENT,
    ) -> list[float]:
        """Embed *text* with *model*, raising typed errors on failure."""
        try:
            response = await self._get_client().embeddings.create(
                input=[f"{self._prefixes[role]}{text}"],
                model=model,
            )
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"Embedding model {model} is rate-limited: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"Embedding model {model} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not response.data:
            raise EmbeddingError(
                message=f"Embedding model {model} returned no data",
                provider_name=self.get_provider_name(),
            )

        logger.debug(
            "openai_embedding",
            model=model,
            role=role.value,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return list(response.data[0].embedding)

    def get_models(self) -> list[str]:
        return list(self._models)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "openai-compatible_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if an API key and at least one model are configured."""
        return bool(self._api_key) and bool(self._models)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_client(self) -> openai.AsyncOpenAI:
        """Build the client on first use; the SDK refuses an empty key."""
        if self._client is None:
            if not self._api_key:
                raise EmbeddingError(
                    message="No embedding API key configured (GOOGLE_AI_API_KEY)",
                    provider_name=self.get_provider_name(),
                )
            client_kwargs: dict = {"api_key": self._api_key}
            if self._base_url:
                client_kwargs["base_url"] = self._base_url
            self._client = openai.AsyncOpenAI(**client_kwargs)
        return self._client
