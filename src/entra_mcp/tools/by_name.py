"""Tools that enable or disable an account identified by display name.

The name is resolved with the same starts-with search as
``search_user_by_name``. Only an unambiguous single match is acted on; zero
or several matches come back as ``success=False`` so the assistant can ask
the user which account was meant.
"""

import dataclasses
import logging
from abc import abstractmethod
from typing import Any, Dict, List, Optional

from ..directory.base import DirectoryClient, is_guest_identifier
from ..models.base import ToolOutput
from .base import MCPTool, ToolExecutionError, ToolName
from .disable_user import DisableUserTool, guest_rejection
from .enable_user import EnableUserTool
from .search_user import DISPLAY_NAME_SCHEMA, SearchUserByNameTool

logger = logging.getLogger(__name__)


class _ByNameTool(MCPTool):
    verb = ""

    def __init__(self, directory: Optional[DirectoryClient] = None):
        super().__init__(directory)
        self._search = SearchUserByNameTool(directory)

    @property
    def input_schema(self) -> Dict[str, Any]:
        return DISPLAY_NAME_SCHEMA

    @property
    @abstractmethod
    def _delegate(self) -> MCPTool:
        """The id-based tool that performs the change."""
        pass

    def _check_target(self, user: Dict[str, Any]) -> Optional[ToolOutput]:
        """Return a rejection for a resolved account, or None to proceed."""
        return None

    async def _execute(self, parameters: Dict[str, Any]) -> ToolOutput:
        display_name = self.require(parameters, "displayName")
        try:
            found = await self._search.execute({"displayName": display_name})
            users: List[Dict[str, Any]] = found.payload.get("users", [])

            if not found.success or not users:
                return ToolOutput(
                    tool_name=self.name,
                    success=False,
                    message=f'No users found with display name matching "{display_name}"',
                )

            if len(users) > 1:
                logger.info(f"{len(users)} users match {display_name!r}, asking to disambiguate")
                return ToolOutput(
                    tool_name=self.name,
                    success=False,
                    message=(
                        f'Multiple users found matching "{display_name}". '
                        "Please be more specific or use the exact UPN."
                    ),
                    payload={"users": users},
                )

            user = users[0]
            rejection = self._check_target(user)
            if rejection is not None:
                return rejection

            identifier = user.get("userPrincipalName") or user["id"]
            output = await self._delegate.execute({"userId": identifier})
            return dataclasses.replace(output, tool_name=self.name)

        except ToolExecutionError as e:
            raise ToolExecutionError(
                f"Failed to {self.verb} user by name {display_name}: {e}"
            ) from e


class EnableUserByNameTool(_ByNameTool):
    verb = "enable"

    @property
    def kind(self) -> ToolName:
        return ToolName.ENABLE_USER_BY_NAME

    @property
    def description(self) -> str:
        return (
            "Enable a user account in EntraID by display name. Fails without changes "
            "when no user or more than one user matches; the matches are returned."
        )

    @property
    def _delegate(self) -> MCPTool:
        return EnableUserTool(self._directory)


class DisableUserByNameTool(_ByNameTool):
    verb = "disable"

    @property
    def kind(self) -> ToolName:
        return ToolName.DISABLE_USER_BY_NAME

    @property
    def description(self) -> str:
        return (
            "Disable a user account in EntraID by display name. Fails without changes "
            "when no user or more than one user matches. Guest users cannot be disabled."
        )

    @property
    def _delegate(self) -> MCPTool:
        return DisableUserTool(self._directory)

    def _check_target(self, user: Dict[str, Any]) -> Optional[ToolOutput]:
        upn = user.get("userPrincipalName") or ""
        if is_guest_identifier(upn) or is_guest_identifier(user.get("id", "")):
            logger.warning(f"Refusing to disable guest user {upn}")
            return guest_rejection(self.name, upn or user.get("id", ""))
        return None
