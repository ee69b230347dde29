"""Unit tests for the OpenAI-compatible embedding provider adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from driverag.config.settings import Settings
from driverag.interfaces.embedding_provider import EmbeddingRole
from driverag.utils.errors import EmbeddingError, RateLimitError

_PATCH_TARGET = "driverag.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"


def _settings(**overrides) -> Settings:
    defaults = {
        "google_ai_api_key": "test-key",
        "genai_base_url": "",
        "embedding_models": "text-embedding-004, embed-backup",
        "embedding_dimension": 768,
        "embedding_query_prefix": "",
        "embedding_document_prefix": "",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _response(dim: int = 768) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=[0.25] * dim)]
    response.usage = MagicMock(total_tokens=7)
    return response


class TestOpenAIEmbeddingProvider:
    def test_metadata(self) -> None:
        from driverag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(_settings())

        assert "embedding" in provider.get_provider_name()
        assert provider.get_models() == ["text-embedding-004", "embed-backup"]
        assert provider.get_dimension() == 768
        assert provider.is_available() is True

    def test_unavailable_without_key(self) -> None:
        from driverag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        assert OpenAIEmbeddingProvider(_settings(google_ai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_missing_key_fails_on_call_not_construction(self) -> None:
        from driverag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        with patch(_PATCH_TARGET) as client_cls:
            provider = OpenAIEmbeddingProvider(_settings(google_ai_api_key=""))
            with pytest.raises(EmbeddingError, match="GOOGLE_AI_API_KEY"):
                await provider.embed_single("x", model="text-embedding-004")

        client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_client_built_once(self) -> None:
        from driverag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response())

        with patch(_PATCH_TARGET, return_value=mock_client) as client_cls:
            provider = OpenAIEmbeddingProvider(_settings(genai_base_url="https://gateway.test/v1"))
            await provider.embed_single("a", model="m")
            await provider.embed_single("b", model="m")

        client_cls.assert_called_once_with(api_key="test-key", base_url="https://gateway.test/v1")

    @pytest.mark.asyncio
    async def test_embed_single_success(self) -> None:
        from driverag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response())

        with patch(_PATCH_TARGET, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings())
            result = await provider.embed_single("hello", model="text-embedding-004")

        assert len(result) == 768
        mock_client.embeddings.create.assert_awaited_once_with(
            input=["hello"], model="text-embedding-004"
        )

    @pytest.mark.asyncio
    async def test_role_prefixes_applied(self) -> None:
        from driverag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response())
        settings = _settings(
            embedding_query_prefix="search_query: ",
            embedding_document_prefix="search_document: ",
        )

        with patch(_PATCH_TARGET, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            await provider.embed_single("what?", model="m", role=EmbeddingRole.QUERY)
            await provider.embed_single("body", model="m", role=EmbeddingRole.DOCUMENT)

        inputs = [c.kwargs["input"] for c in mock_client.embeddings.create.await_args_list]
        assert inputs == [["search_query: what?"], ["search_document: body"]]

    @pytest.mark.asyncio
    async def test_rate_limit_mapped(self) -> None:
        from driverag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        request = httpx.Request("POST", "https://example.test/embeddings")
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.RateLimitError(
                "quota exhausted",
                response=httpx.Response(429, request=request),
                body=None,
            )
        )

        with patch(_PATCH_TARGET, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings())
            with pytest.raises(RateLimitError, match="text-embedding-004"):
                await provider.embed_single("x", model="text-embedding-004")

    @pytest.mark.asyncio
    async def test_api_error_mapped(self) -> None:
        from driverag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIError(message="model not found", request=MagicMock(), body=None)
        )

        with patch(_PATCH_TARGET, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings())
            with pytest.raises(EmbeddingError) as exc_info:
                await provider.embed_single("x", model="embed-backup")

        assert not isinstance(exc_info.value, RateLimitError)
        assert exc_info.value.provider_name == provider.get_provider_name()

    @pytest.mark.asyncio
    async def test_empty_data_raises(self) -> None:
        from driverag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        empty = MagicMock()
        empty.data = []
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=empty)

        with patch(_PATCH_TARGET, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings())
            with pytest.raises(EmbeddingError, match="no data"):
                await provider.embed_single("x", model="m")
