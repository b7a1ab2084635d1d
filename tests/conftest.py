"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add the project root and src directory to Python path so tests can import properly
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "src"))

from tests.fixtures import FakeAuditStore, FakeDirectory, make_user  # noqa: E402


@pytest.fixture
def directory():
    """A directory with a handful of regular and guest accounts."""
    return FakeDirectory(
        [
            make_user("abc-guid", "alice@contoso.com", "Alice Smith", enabled=False),
            make_user("jane-1", "jane.doe@contoso.com", "Jane Doe"),
            make_user("jane-2", "jane.roe@contoso.com", "Jane Roe"),
            make_user("bob-guid", "bob@contoso.com", "Bob Jones"),
            make_user(
                "guest-guid",
                "guest_fabrikam.com#EXT#@contoso.onmicrosoft.com",
                "Gary Guest",
            ),
        ]
    )


@pytest.fixture
def audit_store():
    return FakeAuditStore()
