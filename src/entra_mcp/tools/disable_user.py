"""Tool for disabling a user account."""

import logging
from typing import Any, Dict

from ..directory.base import DirectoryError, is_guest_identifier
from ..models.base import ToolOutput
from .base import MCPTool, ToolExecutionError, ToolName
from .enable_user import USER_ID_SCHEMA

logger = logging.getLogger(__name__)


def guest_rejection(tool_name: str, identifier: str) -> ToolOutput:
    """The refusal returned instead of disabling an external identity."""
    return ToolOutput(
        tool_name=tool_name,
        success=False,
        message=(
            f"Cannot disable guest user {identifier}. Guest users with external "
            "identities are protected from disabling operations."
        ),
    )


class DisableUserTool(MCPTool):
    """Block sign-in for an account. Guest accounts are refused."""

    @property
    def kind(self) -> ToolName:
        return ToolName.DISABLE_USER

    @property
    def description(self) -> str:
        return (
            "Disable a user account in EntraID by user ID or user principal name (UPN). "
            "Guest users (containing #EXT# in their UPN) cannot be disabled."
        )

    @property
    def input_schema(self) -> Dict[str, Any]:
        return USER_ID_SCHEMA

    async def _execute(self, parameters: Dict[str, Any]) -> ToolOutput:
        user_id = self.require(parameters, "userId")
        if is_guest_identifier(user_id):
            logger.warning(f"Refusing to disable guest user {user_id}")
            return guest_rejection(self.name, user_id)

        try:
            user = await self.directory.disable_user(user_id)
        except DirectoryError as e:
            raise ToolExecutionError(
                f"Failed to disable user {user_id}: {e.message or 'Unknown error'}"
            ) from e

        logger.info(f"Disabled user {user_id}")
        return ToolOutput(
            tool_name=self.name,
            success=True,
            message=f"User {user_id} has been disabled",
            payload={"user": user.to_dict()},
        )
