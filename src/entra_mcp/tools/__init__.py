"""Tools for the Entra MCP server."""

from .base import (
    MCPTool,
    ToolArgumentError,
    ToolError,
    ToolExecutionError,
    ToolName,
    UnknownToolError,
)
from .by_name import DisableUserByNameTool, EnableUserByNameTool
from .disable_user import DisableUserTool
from .enable_user import EnableUserTool
from .search_user import SearchUserByNameTool
from .user_status import GetUserStatusTool

DIRECTORY_TOOLS = (
    EnableUserTool,
    DisableUserTool,
    GetUserStatusTool,
    SearchUserByNameTool,
    EnableUserByNameTool,
    DisableUserByNameTool,
)

__all__ = [
    "DIRECTORY_TOOLS",
    "MCPTool",
    "ToolArgumentError",
    "ToolError",
    "ToolExecutionError",
    "ToolName",
    "UnknownToolError",
    "DisableUserByNameTool",
    "DisableUserTool",
    "EnableUserByNameTool",
    "EnableUserTool",
    "GetUserStatusTool",
    "SearchUserByNameTool",
]
