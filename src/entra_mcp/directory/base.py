"""Directory capability interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.base import DirectoryUser

# Marker Entra ID puts in the UPN of guest accounts from external tenants.
GUEST_MARKER = "#EXT#"


def is_guest_identifier(identifier: str) -> bool:
    """Check whether a user id or UPN belongs to an external (guest) identity."""
    return GUEST_MARKER in (identifier or "")


class DirectoryError(Exception):
    """Raised when the directory service rejects or fails a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class DirectoryClient(ABC):
    """Abstract directory of user accounts.

    Identifiers are either an object id (GUID) or a user principal name.
    """

    @abstractmethod
    async def enable_user(self, user_id: str) -> DirectoryUser:
        """Enable sign-in for an account and return its updated state."""
        ...

    @abstractmethod
    async def disable_user(self, user_id: str) -> DirectoryUser:
        """Disable sign-in for an account and return its updated state."""
        ...

    @abstractmethod
    async def get_user(self, user_id: str) -> DirectoryUser:
        """Fetch a single account."""
        ...

    @abstractmethod
    async def search_users(self, display_name: str) -> List[DirectoryUser]:
        """Find accounts whose display name starts with ``display_name``.

        The prefix is passed through literally; implementations must not add
        case folding or turn it into a substring match.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        return None
