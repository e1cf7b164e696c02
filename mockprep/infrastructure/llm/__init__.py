"""LLM infrastructure."""

from .client import GeminiRestClient, LLMError, LLMCredentialsError

__all__ = ["GeminiRestClient", "LLMError", "LLMCredentialsError"]
