"""Core components: tool catalog, invocation and orchestration."""

from .invoker import ToolInvoker
from .orchestrator import ConversationOrchestrator, OrchestrationError
from .registry import ToolRegistry

__all__ = ["ConversationOrchestrator", "OrchestrationError", "ToolInvoker", "ToolRegistry"]
