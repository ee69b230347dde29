"""Unit tests for ChatService: validation, prompt assembly, model fallback."""

from __future__ import annotations

import asyncio

import pytest

from driverag.models.rag import EmbeddingVector, RetrievalMatch, VectorMetadata
from driverag.services.chat_service import ChatService
from driverag.utils.errors import (
    AllModelsBusyError,
    InputValidationError,
    LLMError,
    RateLimitError,
    VectorStoreError,
)


def _match(file_name: str, content: str, score: float) -> RetrievalMatch:
    return RetrievalMatch(
        id=f"{file_name}-chunk-0",
        score=score,
        metadata=VectorMetadata(
            file_name=file_name,
            file_id=file_name,
            chunk_index=0,
            content=content,
            timestamp="2024-01-01T00:00:00+00:00",
        ),
    )


async def _collect(iterator) -> list[str]:
    return [fragment async for fragment in iterator]


@pytest.fixture()
def chat_service(embedding_service, mock_vector_store, mock_llm) -> ChatService:
    return ChatService(
        embedding_service=embedding_service,
        vector_store=mock_vector_store,
        llm=mock_llm,
        top_k=3,
        fragment_timeout=1.0,
    )


class TestValidation:
    @pytest.mark.parametrize("message", [None, "", "   \n", 42, ["hi"]])
    def test_rejects_missing_or_non_string(self, message) -> None:
        with pytest.raises(InputValidationError, match="Message is required"):
            ChatService.validate_message(message)

    def test_accepts_text(self) -> None:
        assert ChatService.validate_message("What is our leave policy?") == "What is our leave policy?"

    @pytest.mark.asyncio
    async def test_invalid_message_never_reaches_providers(
        self, chat_service, mock_embedding_provider, mock_llm
    ) -> None:
        with pytest.raises(InputValidationError):
            await chat_service.stream_answer("  ")

        assert mock_embedding_provider.calls == []
        assert mock_llm.opened == []


class TestPromptAssembly:
    def test_context_ordered_by_score(self) -> None:
        context = ChatService.build_context(
            [_match("low.txt", "low body", 0.2), _match("high.txt", "high body", 0.9)]
        )

        assert context == (
            "[Document 1: high.txt]\nhigh body\n\n---\n\n[Document 2: low.txt]\nlow body"
        )

    def test_prompt_sections(self, chat_service) -> None:
        prompt = chat_service.build_prompt("Who signed?", [_match("memo.txt", "Jones signed.", 0.8)])

        assert prompt.startswith(ChatService._PREAMBLE)
        assert "## Reference documents:\n[Document 1: memo.txt]\nJones signed." in prompt
        assert prompt.endswith("## User question:\nWho signed?\n\n## Answer:")
        assert ChatService._NO_CONTEXT_NOTICE not in prompt

    def test_prompt_without_matches_uses_notice(self, chat_service) -> None:
        prompt = chat_service.build_prompt("Anything?", [])

        assert ChatService._NO_CONTEXT_NOTICE in prompt
        assert "## Reference documents:" not in prompt

    @pytest.mark.asyncio
    async def test_retrieve_uses_top_k(self, chat_service, mock_vector_store) -> None:
        for i in range(5):
            metadata = _match(f"f{i}.txt", f"body {i}", 0.5).metadata
            mock_vector_store.store[f"v{i}"] = EmbeddingVector(
                id=f"v{i}", values=[0.1 * (i + 1)] * 8, metadata=metadata
            )

        matches = await chat_service.retrieve("question")

        assert len(matches) == 3


class TestStreamAnswer:
    @pytest.mark.asyncio
    async def test_streams_from_first_model(self, chat_service, mock_llm) -> None:
        fragments = await _collect(await chat_service.stream_answer("hello?"))

        assert fragments == ["Hello", ", ", "world"]
        assert mock_llm.opened == ["gen-lite"]
        assert "## User question:\nhello?" in mock_llm.prompts[0]
        assert mock_llm.closed == 1

    @pytest.mark.asyncio
    async def test_rate_limited_model_falls_through(self, chat_service, mock_llm) -> None:
        mock_llm.behaviours["gen-lite"] = RateLimitError(message="429")
        mock_llm.behaviours["gen-full"] = ["from full"]

        fragments = await _collect(await chat_service.stream_answer("hello?"))

        assert fragments == ["from full"]
        assert mock_llm.opened == ["gen-lite", "gen-full"]

    @pytest.mark.asyncio
    async def test_all_models_busy(self, chat_service, mock_llm) -> None:
        mock_llm.behaviours["gen-lite"] = RateLimitError(message="429")
        mock_llm.behaviours["gen-full"] = RateLimitError(message="429")

        with pytest.raises(AllModelsBusyError):
            await chat_service.stream_answer("hello?")

    @pytest.mark.asyncio
    async def test_non_rate_limit_error_is_not_retried(self, chat_service, mock_llm) -> None:
        mock_llm.behaviours["gen-lite"] = LLMError(message="bad request")

        with pytest.raises(LLMError, match="bad request"):
            await chat_service.stream_answer("hello?")

        assert mock_llm.opened == ["gen-lite"]

    @pytest.mark.asyncio
    async def test_retrieval_failure_propagates(self, chat_service, mock_vector_store, mock_llm) -> None:
        async def broken_query(*args, **kwargs):
            raise VectorStoreError(message="index offline")

        mock_vector_store.query = broken_query

        with pytest.raises(VectorStoreError):
            await chat_service.stream_answer("hello?")

        assert mock_llm.opened == []

    @pytest.mark.asyncio
    async def test_mid_stream_error_raised_to_consumer(self, chat_service, mock_llm) -> None:
        mock_llm.behaviours["gen-lite"] = ["partial", LLMError(message="reset")]
        received: list[str] = []

        iterator = await chat_service.stream_answer("hello?")
        with pytest.raises(LLMError):
            async for fragment in iterator:
                received.append(fragment)

        assert received == ["partial"]
        assert mock_llm.closed == 1

    @pytest.mark.asyncio
    async def test_slow_fragment_times_out(self, embedding_service, mock_vector_store, mock_llm) -> None:
        async def stalled():
            yield "first"
            await asyncio.sleep(5)
            yield "never"

        async def open_stream(prompt: str, model: str):
            return stalled()

        mock_llm.open_stream = open_stream
        service = ChatService(
            embedding_service=embedding_service,
            vector_store=mock_vector_store,
            llm=mock_llm,
            fragment_timeout=0.05,
        )
        received: list[str] = []

        iterator = await service.stream_answer("hello?")
        with pytest.raises(LLMError, match="sent nothing"):
            async for fragment in iterator:
                received.append(fragment)

        assert received == ["first"]
