"""In-memory store of conversations keyed by id."""

import asyncio
import logging
import secrets
import time
from typing import Any, Callable, Dict, List, Optional

from ..models.conversation import Conversation
from ..prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def generate_conversation_id() -> str:
    return f"conv_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


class ConversationStore:
    """Process-wide map of conversation id to history.

    Conversations live until deleted or until the process exits.
    """

    def __init__(
        self,
        system_prompt: str = SYSTEM_PROMPT,
        id_factory: Callable[[], str] = generate_conversation_id,
    ):
        self.system_prompt = system_prompt
        self._id_factory = id_factory
        self._conversations: Dict[str, Conversation] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, conversation_id: str) -> Optional[Conversation]:
        """Get a conversation by ID."""
        return self._conversations.get(conversation_id)

    def create(self, conversation_id: Optional[str] = None) -> Conversation:
        """Create a conversation seeded with the system prompt.

        Args:
            conversation_id: Caller-supplied id. A new one is generated when
                omitted.

        Raises:
            ValueError: If the id is already in use.
        """
        conversation_id = conversation_id or self._id_factory()
        if conversation_id in self._conversations:
            raise ValueError(f"Conversation {conversation_id} already exists")

        conversation = Conversation(conversation_id=conversation_id, system_prompt=self.system_prompt)
        self._conversations[conversation_id] = conversation
        logger.info(f"Created conversation {conversation_id}")
        return conversation

    def get_or_create(self, conversation_id: Optional[str] = None) -> Conversation:
        if conversation_id:
            existing = self._conversations.get(conversation_id)
            if existing is not None:
                return existing
        return self.create(conversation_id)

    def delete(self, conversation_id: str) -> bool:
        """Forget a conversation. Returns False if it did not exist."""
        self._locks.pop(conversation_id, None)
        if self._conversations.pop(conversation_id, None) is None:
            return False
        logger.info(f"Deleted conversation {conversation_id}")
        return True

    def lock(self, conversation_id: str) -> asyncio.Lock:
        """Lock used to run one turn at a time on a conversation."""
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()
        return lock

    def list_conversations(self) -> List[Dict[str, Any]]:
        """List conversations, most recently active first."""
        return [
            {
                "conversation_id": c.conversation_id,
                "messages": len(c.messages),
                "created_at": c.created_at.isoformat(),
                "last_activity": c.last_activity.isoformat(),
            }
            for c in sorted(
                self._conversations.values(),
                key=lambda x: x.last_activity,
                reverse=True,
            )
        ]

    def get_stats(self) -> Dict[str, Any]:
        total_messages = sum(len(c.messages) for c in self._conversations.values())
        return {
            "active_conversations": len(self._conversations),
            "total_messages": total_messages,
        }

    def __len__(self) -> int:
        return len(self._conversations)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations
