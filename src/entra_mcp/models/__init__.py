"""Data models for the Entra MCP server."""

from .audit import AuditAction, AuditRecord
from .base import DirectoryUser, ToolOutput
from .conversation import Conversation, Message, Role, ToolCall

__all__ = [
    "AuditAction",
    "AuditRecord",
    "Conversation",
    "DirectoryUser",
    "Message",
    "Role",
    "ToolCall",
    "ToolOutput",
]
