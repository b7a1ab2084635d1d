"""Audit record model."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class AuditAction(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class AuditRecord:
    """One mutating action, as written to every enabled sink."""

    requester_ip: str
    target_user_id: str
    action: AuditAction
    timestamp: str = field(default_factory=_utc_timestamp)
    authenticated_user: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "requesterIp": self.requester_ip,
            "targetUserId": self.target_user_id,
            "action": self.action.value,
            "timestamp": self.timestamp,
        }
        if self.authenticated_user:
            data["authenticatedUser"] = self.authenticated_user
        return data
