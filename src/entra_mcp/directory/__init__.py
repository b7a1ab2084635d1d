"""Directory capability for the Entra MCP server."""

from .base import GUEST_MARKER, DirectoryClient, DirectoryError, is_guest_identifier
from .graph import GraphDirectory

__all__ = [
    "GUEST_MARKER",
    "DirectoryClient",
    "DirectoryError",
    "GraphDirectory",
    "is_guest_identifier",
]
