"""LLM provider implementations."""

from driverag.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
