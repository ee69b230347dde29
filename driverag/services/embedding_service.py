"""Embedding service with caching, model fallback and retry.

Sits between the pipeline / chat flow and an :class:`IEmbeddingProvider`:

    caller ──embed()──→ cache ──miss──→ model 1 ──fail──→ model 2 ──→ ...
                          ↑                  │
                          └──── store ←──────┘ (first valid vector)

Every failure from a model (rate limit, API error, empty or wrong-length
vector) moves on to the next model.  Only when the whole list is exhausted
does the caller see an error.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Union

import structlog

from driverag.interfaces.cache_provider import ICacheProvider
from driverag.interfaces.embedding_provider import EmbeddingRole, IEmbeddingProvider
from driverag.models.documents import TextChunk
from driverag.utils.errors import DriveRagError, EmbeddingError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

ProgressCallback = Callable[[int, int], Union[None, Awaitable[None]]]


class EmbeddingService:
    """Turns text into vectors of the provider's contracted dimension.

    Parameters
    ----------
    provider:
        Backend that embeds one text with one named model.
    cache:
        Optional cache for recent vectors, keyed by role and a text prefix.
    inter_call_delay:
        Seconds to sleep between consecutive calls in :meth:`embed_batch`.
    cache_key_chars:
        How many leading characters of the text form the cache key.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        cache: ICacheProvider | None = None,
        inter_call_delay: float = 0.1,
        cache_key_chars: int = 500,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._inter_call_delay = inter_call_delay
        self._cache_key_chars = cache_key_chars

    @property
    def dimension(self) -> int:
        return self._provider.get_dimension()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str, role: EmbeddingRole = EmbeddingRole.DOCUMENT) -> list[float]:
        """Embed *text*, trying each provider model in order.

        Raises
        ------
        RateLimitError
            If every model failed and every failure was a rate limit.
        EmbeddingError
            If every model failed for any mix of reasons.  The message lists
            each model's failure.
        """
        cache_key = self._cache_key(text, role)
        if self._cache is not None:
            cached = await self._cache.get(cache_key)
            if cached is not None:
                return cached

        expected_dim = self._provider.get_dimension()
        models = self._provider.get_models()
        failures: list[str] = []
        all_rate_limited = True

        for model in models:
            try:
                vector = await self._provider.embed_single(text, model=model, role=role)
            except DriveRagError as exc:
                all_rate_limited = all_rate_limited and isinstance(exc, RateLimitError)
                failures.append(f"{model}: {exc.message}")
                logger.warning(
                    "embedding_model_failed",
                    model=model,
                    rate_limited=isinstance(exc, RateLimitError),
                    error=str(exc),
                )
                continue

            if len(vector) != expected_dim:
                all_rate_limited = False
                failures.append(f"{model}: expected {expected_dim} dimensions, got {len(vector)}")
                logger.warning(
                    "embedding_dimension_mismatch",
                    model=model,
                    expected=expected_dim,
                    actual=len(vector),
                )
                continue

            if self._cache is not None:
                await self._cache.set(cache_key, vector)
            return vector

        summary = "; ".join(failures) if failures else "no embedding models configured"
        provider_name = self._provider.get_provider_name()
        if failures and all_rate_limited:
            raise RateLimitError(
                message=f"All embedding models are rate-limited ({summary})",
                provider_name=provider_name,
            )
        raise EmbeddingError(
            message=f"All embedding models failed ({summary})",
            provider_name=provider_name,
        )

    async def embed_with_retry(
        self,
        text: str,
        role: EmbeddingRole = EmbeddingRole.DOCUMENT,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ) -> list[float]:
        """Call :meth:`embed` up to *max_retries* times with exponential backoff."""
        last_error: DriveRagError | None = None
        for attempt in range(max_retries):
            try:
                return await self.embed(text, role)
            except DriveRagError as exc:
                last_error = exc
                if attempt < max_retries - 1:
                    backoff = base_delay * 2**attempt
                    logger.warning(
                        "embedding_retry",
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        backoff_s=backoff,
                        error=str(exc),
                    )
                    await asyncio.sleep(backoff)

        if last_error is None:
            raise EmbeddingError(
                message=f"max_retries must be positive, got {max_retries}",
                provider_name=self._provider.get_provider_name(),
            )
        raise last_error

    async def embed_batch(
        self,
        chunks: list[TextChunk],
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, list[float]]:
        """Embed *chunks* one at a time, returning ``{chunk.id: vector}``.

        Calls are strictly sequential with ``inter_call_delay`` between
        them.  ``on_progress(processed, total)`` runs after each success.
        The first failure aborts the batch and propagates.
        """
        vectors: dict[str, list[float]] = {}
        total = len(chunks)

        for i, chunk in enumerate(chunks):
            if i > 0 and self._inter_call_delay > 0:
                await asyncio.sleep(self._inter_call_delay)

            vectors[chunk.id] = await self.embed(chunk.content, EmbeddingRole.DOCUMENT)

            if on_progress is not None:
                result = on_progress(i + 1, total)
                if inspect.isawaitable(result):
                    await result

        logger.info("embedding_batch_complete", total=total)
        return vectors

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _cache_key(self, text: str, role: EmbeddingRole) -> str:
        return f"{role.value}:{text[: self._cache_key_chars]}"
