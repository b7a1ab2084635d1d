"""Services for the Entra MCP server."""

from .audit import AuditLogger, AuditLogReader, AuditStore, ImmudbStore
from .conversations import ConversationStore

__all__ = ["AuditLogger", "AuditLogReader", "AuditStore", "ConversationStore", "ImmudbStore"]
