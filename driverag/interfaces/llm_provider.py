"""Abstract base class for LLM service providers.

Defines the contract for streaming text generation.  Opening a stream is a
separate awaitable step from consuming it, so callers can react to a
rate-limit rejection (which arrives with the HTTP response status) before
any text has been sent to their own client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


# Concrete implementation: OpenAILLMProvider (driverag/providers/llm/)
class ILLMProvider(ABC):
    """Contract for generation services used by the chat flow."""

    @abstractmethod
    async def open_stream(self, prompt: str, model: str) -> AsyncIterator[str]:
        """Start a streamed completion of *prompt* with *model*.

        Parameters
        ----------
        prompt:
            The fully assembled prompt.
        model:
            One of the identifiers returned by :meth:`get_models`.

        Returns
        -------
        AsyncIterator[str]
            Text fragments in arrival order.  Closing the iterator (``aclose``)
            releases the upstream connection.

        Raises
        ------
        driverag.utils.errors.RateLimitError
            If the model rejected the request for capacity reasons.
        driverag.utils.errors.LLMError
            For any other failure, either when opening or mid-stream.
        """

    @abstractmethod
    def get_models(self) -> list[str]:
        """Return the model identifiers to try, in priority order."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider has credentials configured."""
