"""Tool registry: the static catalog of directory tools."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Type

from ..directory.base import DirectoryClient
from ..tools import DIRECTORY_TOOLS
from ..tools.base import MCPTool, ToolName, UnknownToolError

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry holding one instance of every catalog tool."""

    def __init__(self):
        self._tools: Dict[str, MCPTool] = {}

    @classmethod
    def for_directory(
        cls,
        directory: Optional[DirectoryClient],
        tool_classes: Iterable[Type[MCPTool]] = DIRECTORY_TOOLS,
    ) -> "ToolRegistry":
        """Build a registry with every tool bound to ``directory``.

        ``directory`` may be None; the tools are still listed but fail with a
        configuration message when executed.
        """
        registry = cls()
        for tool_class in tool_classes:
            registry.register(tool_class(directory))
        registry.validate()
        return registry

    def register(self, tool: MCPTool) -> None:
        """Register a tool instance."""
        # Only names from the closed catalog are accepted.
        kind = ToolName.parse(tool.name)

        if kind.value in self._tools:
            logger.warning(f"Tool {kind.value} already registered, skipping")
            return

        self._tools[kind.value] = tool
        logger.info(f"Registered tool: {kind.value}")

    def validate(self) -> None:
        """Raise if any catalog entry has no registered tool."""
        missing = [kind.value for kind in ToolName if kind.value not in self._tools]
        if missing:
            raise ValueError(f"No implementation registered for: {', '.join(missing)}")

    def get_tool(self, name: str) -> Optional[MCPTool]:
        """Get a tool instance by name."""
        return self._tools.get(name)

    def require_tool(self, name: str) -> MCPTool:
        """Get a tool instance by name, raising UnknownToolError if absent."""
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name)
        return tool

    def list_tools(self) -> List[str]:
        """List all registered tool names."""
        return list(self._tools.keys())

    def get_mcp_tool_definitions(self) -> List[Dict[str, Any]]:
        """Get MCP tool definitions ({name, description, inputSchema})."""
        return [tool.get_mcp_definition() for tool in self._tools.values()]

    def get_openai_tool_definitions(self) -> List[Dict[str, Any]]:
        """Get the catalog in OpenAI function-calling format."""
        return [tool.get_openai_definition() for tool in self._tools.values()]
