"""Tool for finding accounts by display name."""

import logging
from typing import Any, Dict

from ..directory.base import DirectoryError
from ..models.base import ToolOutput
from .base import MCPTool, ToolExecutionError, ToolName

logger = logging.getLogger(__name__)

DISPLAY_NAME_SCHEMA = {
    "type": "object",
    "properties": {
        "displayName": {
            "type": "string",
            "description": "Full or partial display name (the beginning of the name)",
        },
    },
    "required": ["displayName"],
}


class SearchUserByNameTool(MCPTool):
    """List accounts whose display name starts with the given text."""

    @property
    def kind(self) -> ToolName:
        return ToolName.SEARCH_USER_BY_NAME

    @property
    def description(self) -> str:
        return (
            "Search for users in EntraID whose display name starts with the given text. "
            "Returns each match's ID, UPN, display name and enabled status."
        )

    @property
    def input_schema(self) -> Dict[str, Any]:
        return DISPLAY_NAME_SCHEMA

    async def _execute(self, parameters: Dict[str, Any]) -> ToolOutput:
        display_name = self.require(parameters, "displayName")
        try:
            users = await self.directory.search_users(display_name)
        except DirectoryError as e:
            raise ToolExecutionError(
                f"Failed to search users by name {display_name}: {e.message or 'Unknown error'}"
            ) from e

        logger.info(f"Search for {display_name!r} matched {len(users)} user(s)")
        return ToolOutput(
            tool_name=self.name,
            success=True,
            payload={"count": len(users), "users": [user.to_dict() for user in users]},
        )
