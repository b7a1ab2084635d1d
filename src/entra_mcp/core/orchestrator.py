"""Orchestrator for the bounded think/act loop of a conversation turn."""

import json
import logging
from typing import Any, Dict, Optional

from ..models.conversation import Conversation, Message, Role, ToolCall
from ..providers.base import LLMProvider, LLMProviderError
from ..tools.base import ToolError
from .invoker import ToolInvoker

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 5
FALLBACK_RESPONSE = "No response"


class OrchestrationError(Exception):
    """Raised when the reasoning provider fails during a turn."""


def parse_arguments(tool_call: ToolCall) -> Dict[str, Any]:
    """Decode a tool call's argument text, falling back to an empty object."""
    if not tool_call.arguments:
        return {}
    try:
        return json.loads(tool_call.arguments)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse arguments for {tool_call.name} ({tool_call.id}): {e}")
        return {}


class ConversationOrchestrator:
    """Alternates between the reasoning provider and the tools it asks for.

    A turn makes at most ``max_iterations`` provider calls. Every tool call
    the provider makes is answered by exactly one tool message before the
    next provider call, so the transcript is always valid to send back.
    """

    def __init__(
        self,
        provider: LLMProvider,
        invoker: ToolInvoker,
        max_iterations: int = MAX_ITERATIONS,
        model: Optional[str] = None,
    ):
        self.provider = provider
        self.invoker = invoker
        self.max_iterations = max_iterations
        self.model = model

    async def run(
        self,
        conversation: Conversation,
        user_message: str,
        requester_ip: str = "unknown",
        authenticated_user: Optional[str] = None,
    ) -> str:
        """Process one user message and return the assistant's answer.

        Raises:
            OrchestrationError: The reasoning provider failed. An
                ``Error: ...`` assistant message has been appended first, so
                the conversation can continue.
        """
        conversation.add_message(Message(role=Role.USER, content=user_message))
        tools = self.invoker.registry.get_openai_tool_definitions()
        last_text = ""

        for iteration in range(1, self.max_iterations + 1):
            logger.debug(
                f"Conversation {conversation.conversation_id}: iteration {iteration}"
            )
            try:
                response = await self.provider.complete(
                    conversation.history(), tools=tools, model=self.model
                )
            except LLMProviderError as e:
                logger.error(f"Reasoning provider failed for {conversation.conversation_id}: {e}")
                conversation.add_message(Message(role=Role.ASSISTANT, content=f"Error: {e}"))
                raise OrchestrationError(str(e)) from e

            conversation.add_message(
                Message(
                    role=Role.ASSISTANT,
                    content=response.content or "",
                    tool_calls=tuple(response.tool_calls),
                )
            )
            if response.content:
                last_text = response.content

            if not response.tool_calls:
                return response.content or FALLBACK_RESPONSE

            for tool_call in response.tool_calls:
                content = await self._run_tool(tool_call, requester_ip, authenticated_user)
                conversation.add_message(
                    Message(role=Role.TOOL, content=content, tool_call_id=tool_call.id)
                )

        logger.warning(
            f"Conversation {conversation.conversation_id} reached the limit of "
            f"{self.max_iterations} iterations"
        )
        return last_text or FALLBACK_RESPONSE

    async def _run_tool(
        self,
        tool_call: ToolCall,
        requester_ip: str,
        authenticated_user: Optional[str],
    ) -> str:
        """Execute one tool call and render its tool-message content."""
        arguments = parse_arguments(tool_call)
        try:
            output = await self.invoker.invoke_and_audit(
                tool_call.name, arguments, requester_ip, authenticated_user
            )
        except ToolError as e:
            return f"Error: {e}"
        except Exception as e:
            logger.error(f"Unexpected error in tool {tool_call.name}: {e}", exc_info=True)
            return f"Error: {e}"
        return output.to_json()
