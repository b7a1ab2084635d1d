"""Executes named tools and schedules audit records for mutating ones."""

import logging
from typing import Any, Dict, Optional

from ..models.base import ToolOutput
from ..services.audit import AuditLogger
from ..tools.base import ToolArgumentError, ToolName
from .registry import ToolRegistry

logger = logging.getLogger(__name__)


def audit_target(output: ToolOutput, arguments: Dict[str, Any]) -> Optional[str]:
    """Pick the user id to record for a mutating call.

    The id of the returned user wins; otherwise the identifier the caller
    passed in is used.
    """
    user = output.payload.get("user")
    if isinstance(user, dict) and user.get("id"):
        return user["id"]
    return arguments.get("userId") or arguments.get("displayName")


class ToolInvoker:
    """Dispatches tool calls against the registry."""

    def __init__(self, registry: ToolRegistry, audit_logger: Optional[AuditLogger] = None):
        self.registry = registry
        self.audit_logger = audit_logger

    async def invoke(self, name: str, arguments: Dict[str, Any]) -> ToolOutput:
        """Run one tool.

        Raises:
            UnknownToolError: ``name`` is not in the catalog.
            ToolArgumentError: ``arguments`` is not an object or lacks a
                required field.
            ToolExecutionError: The directory call failed.
        """
        kind = ToolName.parse(name)
        if not isinstance(arguments, dict):
            raise ToolArgumentError("arguments must be an object")

        tool = self.registry.require_tool(kind.value)
        return await tool.execute(arguments)

    async def invoke_and_audit(
        self,
        name: str,
        arguments: Dict[str, Any],
        requester_ip: str = "unknown",
        authenticated_user: Optional[str] = None,
    ) -> ToolOutput:
        """Run one tool and, if it changed an account, record it in the background.

        The audit write is never awaited here; its outcome only shows up in
        the logs.
        """
        output = await self.invoke(name, arguments)

        action = ToolName.parse(name).audit_action
        if action is None or not output.success:
            return output

        target = audit_target(output, arguments)
        if self.audit_logger is None:
            logger.debug(f"Audit logging not configured, {action.value} of {target} not recorded")
        elif target:
            self.audit_logger.record_in_background(
                requester_ip or "unknown", target, action, authenticated_user
            )
        return output
