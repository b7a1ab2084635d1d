"""Base class and shared types for all directory tools."""

import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional

from ..directory.base import DirectoryClient
from ..models.audit import AuditAction
from ..models.base import ToolOutput

logger = logging.getLogger(__name__)


class ToolError(Exception):
    """Base exception for invocation-layer failures."""


class UnknownToolError(ToolError):
    """Raised when a tool name is not part of the catalog."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolArgumentError(ToolError):
    """Raised when a required argument is missing or malformed."""


class ToolExecutionError(ToolError):
    """Raised when the directory call behind a tool fails."""


class ToolName(str, Enum):
    """The closed set of tools the assistant can call."""

    ENABLE_USER = "enable_user"
    DISABLE_USER = "disable_user"
    GET_USER_STATUS = "get_user_status"
    SEARCH_USER_BY_NAME = "search_user_by_name"
    ENABLE_USER_BY_NAME = "enable_user_by_name"
    DISABLE_USER_BY_NAME = "disable_user_by_name"

    @classmethod
    def parse(cls, name: str) -> "ToolName":
        try:
            return cls(name)
        except ValueError:
            raise UnknownToolError(name) from None

    @property
    def audit_action(self) -> Optional[AuditAction]:
        """The audited action for mutating tools, None for read-only ones."""
        return _AUDIT_ACTIONS.get(self)


_AUDIT_ACTIONS = {
    ToolName.ENABLE_USER: AuditAction.ENABLE,
    ToolName.ENABLE_USER_BY_NAME: AuditAction.ENABLE,
    ToolName.DISABLE_USER: AuditAction.DISABLE,
    ToolName.DISABLE_USER_BY_NAME: AuditAction.DISABLE,
}


class MCPTool(ABC):
    """Abstract base class for tools backed by the directory."""

    def __init__(self, directory: Optional[DirectoryClient] = None):
        self._directory = directory

    @property
    @abstractmethod
    def kind(self) -> ToolName:
        """Return the catalog entry this tool implements."""
        pass

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def input_schema(self) -> Dict[str, Any]:
        """Return the JSON schema for tool inputs."""
        pass

    @abstractmethod
    async def _execute(self, parameters: Dict[str, Any]) -> ToolOutput:
        pass

    @property
    def directory(self) -> DirectoryClient:
        if self._directory is None:
            raise ToolExecutionError(
                "Directory service not configured. "
                "Set AZURE_TENANT_ID, AZURE_CLIENT_ID and AZURE_CLIENT_SECRET."
            )
        return self._directory

    async def execute(self, parameters: Dict[str, Any]) -> ToolOutput:
        """Run the tool with timing.

        Business-rule rejections come back as ``success=False`` outputs;
        directory failures raise ToolExecutionError.
        """
        start_time = time.time()
        logger.info(f"Executing tool: {self.name}")
        try:
            output = await self._execute(parameters)
        except ToolError as e:
            logger.error(f"Tool {self.name} failed: {e}")
            raise
        output.execution_time_ms = (time.time() - start_time) * 1000
        return output

    def get_mcp_definition(self) -> Dict[str, Any]:
        """Get the MCP tool definition."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def get_openai_definition(self) -> Dict[str, Any]:
        """Get the definition in OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }

    @staticmethod
    def require(parameters: Dict[str, Any], key: str) -> str:
        """Return a required string argument exactly as given.

        Blank values are rejected; anything else is passed through untouched.
        """
        value = parameters.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ToolArgumentError(f"{key} is required")
        return value
