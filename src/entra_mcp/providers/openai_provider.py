"""OpenAI chat-completions provider with function calling."""

import logging
import os
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from ..models.conversation import ToolCall
from .base import (
    AuthenticationError,
    LLMProvider,
    LLMProviderError,
    LLMResponse,
    ModelNotFoundError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIProvider(LLMProvider):
    """LLM provider using the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = DEFAULT_MODEL,
        timeout: Optional[float] = None,
    ):
        """Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY env var.
            default_model: Default model to use for completions.
            timeout: Request timeout in seconds. If None, the SDK default applies.
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.default_model = default_model
        self.timeout = timeout
        self._client: Optional[AsyncOpenAI] = None

    @property
    def name(self) -> str:
        """Return the provider name."""
        return "openai"

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create the async OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise AuthenticationError(
                    "OpenAI API key not configured. Set OPENAI_API_KEY environment variable.",
                    provider=self.name,
                )
            kwargs: Dict[str, Any] = {"api_key": self.api_key}
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        model: Optional[str] = None,
    ) -> LLMResponse:
        """Request the next assistant message from OpenAI.

        Args:
            messages: The transcript in OpenAI chat format.
            tools: Function definitions offered with ``tool_choice="auto"``.
            model: The model to use. If None, uses the default model.

        Returns:
            LLMResponse containing the text and requested tool calls.

        Raises:
            LLMProviderError: If the request fails.
        """
        model_id = model or self.default_model
        request: Dict[str, Any] = {"model": model_id, "messages": messages}
        if tools:
            request["tools"] = tools
            request["tool_choice"] = "auto"

        logger.info(f"Requesting completion from {model_id} ({len(messages)} messages)")
        try:
            response = await self.client.chat.completions.create(**request)
        except LLMProviderError:
            raise
        except openai.RateLimitError as e:
            raise RateLimitError(str(e), provider=self.name, model=model_id) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise AuthenticationError(str(e), provider=self.name, model=model_id) from e
        except openai.NotFoundError as e:
            raise ModelNotFoundError(str(e), provider=self.name, model=model_id) from e
        except openai.OpenAIError as e:
            logger.error(f"OpenAI error: {e}")
            raise LLMProviderError(str(e), provider=self.name, model=model_id) from e

        if not response.choices:
            raise LLMProviderError("OpenAI returned no choices", provider=self.name, model=model_id)

        message = response.choices[0].message
        tool_calls = []
        for call in message.tool_calls or []:
            function = getattr(call, "function", None)
            if function is None:
                logger.warning(f"Ignoring non-function tool call {call.id}")
                continue
            tool_calls.append(
                ToolCall(id=call.id, name=function.name, arguments=function.arguments or "")
            )

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=message.content or "",
            model=model_id,
            tool_calls=tool_calls,
            usage=usage,
            metadata={"id": response.id, "created": response.created},
        )

    def is_available(self) -> bool:
        """Check if the OpenAI provider is configured.

        Returns:
            True if the API key is configured, False otherwise.
        """
        return bool(self.api_key)
