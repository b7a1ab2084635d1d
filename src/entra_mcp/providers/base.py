"""Base classes for reasoning (LLM) providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models.conversation import ToolCall


@dataclass
class LLMResponse:
    """Response from an LLM provider.

    ``tool_calls`` is empty when the model answered in plain text.
    """

    content: str
    model: str
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: Dict[str, int] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        model: Optional[str] = None,
    ) -> LLMResponse:
        """Ask the model for the next assistant message.

        Args:
            messages: The full transcript in OpenAI chat format.
            tools: Function-calling tool definitions the model may request.
                The request never forces a tool call.
            model: The model to use. If None, uses the default model.

        Returns:
            LLMResponse with the text and any requested tool calls.

        Raises:
            LLMProviderError: If the call fails.
        """
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is configured.

        Returns:
            True if the provider can be used, False otherwise.
        """
        ...


class LLMProviderError(Exception):
    """Base exception for LLM provider errors."""

    def __init__(self, message: str, provider: str = "", model: str = ""):
        super().__init__(message)
        self.provider = provider
        self.model = model


class RateLimitError(LLMProviderError):
    """Raised when rate limited by the provider."""


class AuthenticationError(LLMProviderError):
    """Raised when authentication fails."""


class ModelNotFoundError(LLMProviderError):
    """Raised when the requested model is not found."""
