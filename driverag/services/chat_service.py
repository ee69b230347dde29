"""Retrieval-augmented chat over the indexed drive documents.

Answers a user message in four steps:

    1. Embed the message (query role) via :class:`EmbeddingService`.
    2. Retrieve the ``top_k`` most similar chunks from the vector store.
    3. Assemble a prompt: fixed instructions + numbered reference documents
       (or a notice that nothing relevant was found) + the question.
    4. Stream the answer from the first generation model that accepts the
       request.  Rate-limited models are skipped; any other failure is
       raised immediately.

:meth:`ChatService.stream_answer` finishes steps 1-4 up to the point where
a model has accepted the request *before* returning, so the HTTP layer can
still answer 429 when every model is busy.  Fragments are then pulled
lazily by the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import structlog

from driverag.interfaces.embedding_provider import EmbeddingRole
from driverag.interfaces.llm_provider import ILLMProvider
from driverag.interfaces.vector_store_provider import IVectorStoreProvider
from driverag.models.rag import RetrievalMatch
from driverag.services.embedding_service import EmbeddingService
from driverag.utils.errors import AllModelsBusyError, InputValidationError, LLMError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


class ChatService:
    """Answers questions from the documents in the vector store.

    Parameters
    ----------
    embedding_service:
        Embeds the user message for retrieval.
    vector_store:
        Source of reference chunks.
    llm:
        Streaming generation backend with an ordered model list.
    top_k:
        Number of chunks placed in the prompt.
    fragment_timeout:
        Longest wait, in seconds, for any single streamed fragment.
    """

    _PREAMBLE = (
        "You are an AI assistant that answers questions using the provided documents.\n"
        "If the documents do not contain relevant information, tell the user that "
        "nothing relevant was found.\n"
        "Answer in the same language the user asked in.\n"
        "Keep the answer concise and to the point."
    )

    _NO_CONTEXT_NOTICE = (
        "No relevant documents were found in the knowledge base. Answer from general "
        "knowledge and tell the user that the information was not found in the system."
    )

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: IVectorStoreProvider,
        llm: ILLMProvider,
        top_k: int = 5,
        fragment_timeout: float = 60.0,
    ) -> None:
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._llm = llm
        self._top_k = top_k
        self._fragment_timeout = fragment_timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def validate_message(message: Any) -> str:
        """Return *message* if it is a non-blank string, else raise."""
        if not isinstance(message, str) or not message.strip():
            raise InputValidationError(message="Message is required")
        return message

    async def retrieve(self, message: str) -> list[RetrievalMatch]:
        """Embed *message* as a query and return the closest chunks."""
        vector = await self._embedding_service.embed(message, EmbeddingRole.QUERY)
        matches = await self._vector_store.query(vector, top_k=self._top_k)
        logger.info("chat_context_retrieved", matches=len(matches))
        return matches

    @staticmethod
    def build_context(matches: list[RetrievalMatch]) -> str:
        """Render *matches* best-first as numbered reference documents."""
        ordered = sorted(matches, key=lambda m: m.score, reverse=True)
        return "\n\n---\n\n".join(
            f"[Document {i}: {match.metadata.file_name}]\n{match.metadata.content}"
            for i, match in enumerate(ordered, start=1)
        )

    def build_prompt(self, message: str, matches: list[RetrievalMatch]) -> str:
        parts = [self._PREAMBLE]
        context = self.build_context(matches)
        if context:
            parts.append(f"## Reference documents:\n{context}")
        else:
            parts.append(self._NO_CONTEXT_NOTICE)
        parts.append(f"## User question:\n{message}")
        parts.append("## Answer:")
        return "\n\n".join(parts)

    async def stream_answer(self, message: Any) -> AsyncIterator[str]:
        """Validate, retrieve, open a model stream and return its fragments.

        Raises
        ------
        InputValidationError
            If *message* is not a non-blank string.
        AllModelsBusyError
            If every generation model answered with a rate limit.
        DriveRagError
            Any other failure from retrieval or from opening a stream.
        """
        message = self.validate_message(message)
        matches = await self.retrieve(message)
        prompt = self.build_prompt(message, matches)

        for model in self._llm.get_models():
            try:
                stream = await self._llm.open_stream(prompt, model)
            except RateLimitError as exc:
                logger.warning("chat_model_rate_limited", model=model, error=str(exc))
                continue
            logger.info("chat_model_selected", model=model)
            return self._bounded(stream, model)

        raise AllModelsBusyError(
            message="All generation models are rate-limited",
            provider_name=self._llm.get_provider_name(),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _bounded(self, stream: AsyncIterator[str], model: str) -> AsyncIterator[str]:
        """Yield from *stream*, failing when a fragment takes too long."""
        iterator = stream.__aiter__()
        try:
            while True:
                try:
                    fragment = await asyncio.wait_for(
                        iterator.__anext__(), timeout=self._fragment_timeout
                    )
                except StopAsyncIteration:
                    return
                except asyncio.TimeoutError as exc:
                    raise LLMError(
                        message=(
                            f"Model {model} sent nothing for {self._fragment_timeout}s"
                        ),
                        provider_name=self._llm.get_provider_name(),
                    ) from exc
                yield fragment
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
