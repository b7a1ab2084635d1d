"""Tool for reading the enabled/disabled state of an account."""

from typing import Any, Dict

from ..directory.base import DirectoryError
from ..models.base import ToolOutput
from .base import MCPTool, ToolExecutionError, ToolName
from .enable_user import USER_ID_SCHEMA


class GetUserStatusTool(MCPTool):
    @property
    def kind(self) -> ToolName:
        return ToolName.GET_USER_STATUS

    @property
    def description(self) -> str:
        return "Get the account enabled/disabled status of a user in EntraID"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return USER_ID_SCHEMA

    async def _execute(self, parameters: Dict[str, Any]) -> ToolOutput:
        user_id = self.require(parameters, "userId")
        try:
            user = await self.directory.get_user(user_id)
        except DirectoryError as e:
            raise ToolExecutionError(
                f"Failed to get user status for {user_id}: {e.message or 'Unknown error'}"
            ) from e

        return ToolOutput(tool_name=self.name, success=True, payload={"user": user.to_dict()})
