"""Base models for tools and responses."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class DirectoryUser:
    """The normalized view of a directory account returned by every tool."""

    id: str
    user_principal_name: str = ""
    display_name: str = ""
    account_enabled: Optional[bool] = None

    @classmethod
    def from_graph(cls, data: Dict[str, Any]) -> "DirectoryUser":
        """Create a DirectoryUser from a Microsoft Graph user resource."""
        return cls(
            id=data.get("id", ""),
            user_principal_name=data.get("userPrincipalName") or "",
            display_name=data.get("displayName") or "",
            account_enabled=data.get("accountEnabled"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userPrincipalName": self.user_principal_name,
            "displayName": self.display_name,
            "accountEnabled": self.account_enabled,
        }


@dataclass
class ToolOutput:
    """Uniform result envelope for a tool invocation."""

    tool_name: str
    success: bool = True
    message: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    execution_time_ms: Optional[float] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into the wire shape, e.g. {"success", "message", "user"}."""
        result: Dict[str, Any] = {"success": self.success}
        if self.message is not None:
            result["message"] = self.message
        result.update(self.payload)
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)
