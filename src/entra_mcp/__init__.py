"""Entra MCP - let an assistant manage Entra ID accounts with an audit trail"""

__version__ = "1.0.0"

from .core.invoker import ToolInvoker
from .core.orchestrator import ConversationOrchestrator
from .core.registry import ToolRegistry
from .services.audit import AuditLogger
from .services.conversations import ConversationStore

__all__ = [
    "AuditLogger",
    "ConversationOrchestrator",
    "ConversationStore",
    "ToolInvoker",
    "ToolRegistry",
]
