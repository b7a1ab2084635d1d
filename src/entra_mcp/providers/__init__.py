"""Reasoning providers for the Entra MCP server."""

from .base import (
    AuthenticationError,
    LLMProvider,
    LLMProviderError,
    LLMResponse,
    ModelNotFoundError,
    RateLimitError,
)
from .openai_provider import OpenAIProvider

__all__ = [
    "LLMProvider",
    "LLMProviderError",
    "LLMResponse",
    "AuthenticationError",
    "RateLimitError",
    "ModelNotFoundError",
    "OpenAIProvider",
]
