"""Conversation transcript models in the OpenAI chat message shape."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the reasoning provider.

    ``arguments`` is kept as the raw JSON text the provider sent; it is parsed
    only when the call is dispatched.
    """

    id: str
    name: str
    arguments: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True)
class Message:
    """A single transcript entry."""

    role: Role
    content: str = ""
    tool_calls: Tuple[ToolCall, ...] = ()
    tool_call_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        return data


@dataclass
class Conversation:
    """A conversation and its append-only message history.

    The system message is created with the conversation and is always the
    first entry; later system messages are refused.
    """

    conversation_id: str
    system_prompt: str
    messages: List[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if not self.messages:
            self.messages.append(Message(role=Role.SYSTEM, content=self.system_prompt))
        elif self.messages[0].role is not Role.SYSTEM:
            raise ValueError("The first message of a conversation must be the system prompt")

    def add_message(self, message: Message) -> None:
        """Append a message to the history."""
        if message.role is Role.SYSTEM:
            raise ValueError(f"Conversation {self.conversation_id} already has a system message")
        self.messages.append(message)
        self.last_activity = datetime.now()

    def history(self) -> List[Dict[str, Any]]:
        """Get the full history in OpenAI message format."""
        return [message.to_dict() for message in self.messages]
