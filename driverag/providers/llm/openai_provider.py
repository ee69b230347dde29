"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider` with
streamed chat completions.  The default base URL is Google's
OpenAI-compatible Gemini endpoint; pointing ``GENAI_BASE_URL`` elsewhere
(OpenAI, TogetherAI, a local gateway) reuses the same adapter.

A 429 from the service arrives when the request is opened, before any
fragment is read, and is raised as :class:`RateLimitError` so the chat
service can move on to the next model.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import openai
import structlog

from driverag.config.settings import Settings
from driverag.interfaces.llm_provider import ILLMProvider
from driverag.utils.errors import LLMError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API.

    The model list (``GENERATION_MODELS``) is ordered cheapest/fastest
    first; the caller decides when to fall through to the next one.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.google_ai_api_key
        self._base_url = settings.genai_base_url
        self._timeout = settings.generation_timeout
        self._client: openai.AsyncOpenAI | None = None
        self._models = settings.get_generation_models()
        self._temperature = settings.generation_temperature
        self._max_tokens = settings.generation_max_tokens

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def open_stream(self, prompt: str, model: str) -> AsyncIterator[str]:
        """Open a streamed completion and return an iterator over its text."""
        client = self._get_client()
        try:
            stream = await client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                stream=True,
            )
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"Model {model} is rate-limited: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"Model {model} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("openai_stream_opened", model=model, prompt_length=len(prompt))
        return self._iter_fragments(stream, model)

    def get_models(self) -> list[str]:
        return list(self._models)

    def get_provider_name(self) -> str:
        return "openai-compatible"

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
                raise LLMError(
                    message="No generation API key configured (GOOGLE_AI_API_KEY)",
                    provider_name=self.get_provider_name(),
                )
            # Per-read timeout also bounds the gap between streamed fragments.
            client_kwargs: dict = {
                "api_key": self._api_key,
                "timeout": openai.Timeout(self._timeout, connect=5.0),
            }
            if self._base_url:
                client_kwargs["base_url"] = self._base_url
            self._client = openai.AsyncOpenAI(**client_kwargs)
        return self._client

    async def _iter_fragments(self, stream, model: str) -> AsyncIterator[str]:  # noqa: ANN001
        """Yield non-empty content deltas; always close the upstream stream."""
        fragments = 0
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    fragments += 1
                    yield content
        except openai.APIError as exc:
            raise LLMError(
                message=f"Model {model} stream failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        finally:
            await stream.close()
            logger.debug("openai_stream_closed", model=model, fragments=fragments)
