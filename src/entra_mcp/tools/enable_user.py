"""Tool for enabling a user account."""

import logging
from typing import Any, Dict

from ..directory.base import DirectoryError
from ..models.base import ToolOutput
from .base import MCPTool, ToolExecutionError, ToolName

logger = logging.getLogger(__name__)

USER_ID_SCHEMA = {
    "type": "object",
    "properties": {
        "userId": {
            "type": "string",
            "description": "User ID (GUID) or User Principal Name (UPN/email) of the user",
        },
    },
    "required": ["userId"],
}


class EnableUserTool(MCPTool):
    """Turn sign-in back on for an account."""

    @property
    def kind(self) -> ToolName:
        return ToolName.ENABLE_USER

    @property
    def description(self) -> str:
        return "Enable a user account in EntraID by user ID or user principal name (UPN)"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return USER_ID_SCHEMA

    async def _execute(self, parameters: Dict[str, Any]) -> ToolOutput:
        user_id = self.require(parameters, "userId")
        try:
            user = await self.directory.enable_user(user_id)
        except DirectoryError as e:
            raise ToolExecutionError(
                f"Failed to enable user {user_id}: {e.message or 'Unknown error'}"
            ) from e

        logger.info(f"Enabled user {user_id}")
        return ToolOutput(
            tool_name=self.name,
            success=True,
            message=f"User {user_id} has been enabled",
            payload={"user": user.to_dict()},
        )
