"""Test fixtures for the Entra MCP server tests."""

import asyncio
import copy
import json
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from entra_mcp.config import ImmudbConfig
from entra_mcp.directory.base import DirectoryClient, DirectoryError
from entra_mcp.models.base import DirectoryUser
from entra_mcp.models.conversation import ToolCall
from entra_mcp.providers.base import LLMProvider, LLMResponse
from entra_mcp.services.audit import AuditStore


def make_user(
    user_id: str, upn: str, display_name: str, enabled: bool = True
) -> DirectoryUser:
    return DirectoryUser(
        id=user_id,
        user_principal_name=upn,
        display_name=display_name,
        account_enabled=enabled,
    )


def immudb_config(mode: str = "kv", enabled: bool = True) -> ImmudbConfig:
    """Create a complete immudb configuration for testing."""
    return ImmudbConfig(
        host="localhost",
        port=3322,
        user="immudb",
        password="immudb",
        database="defaultdb",
        mode=mode,
        enabled=enabled,
    )


class FakeDirectory(DirectoryClient):
    """In-memory directory that records every call made to it."""

    def __init__(self, users: Iterable[DirectoryUser] = ()):
        self.users: Dict[str, DirectoryUser] = {u.id: u for u in users}
        self.calls: List[Tuple[str, str]] = []
        self.error: Optional[DirectoryError] = None
        self.closed = False

    def _find(self, user_id: str) -> DirectoryUser:
        for user in self.users.values():
            if user_id in (user.id, user.user_principal_name):
                return user
        raise DirectoryError(
            f"Resource '{user_id}' does not exist or one of its queried reference-property "
            "objects are not present.",
            status_code=404,
        )

    async def _call(self, operation: str, argument: str) -> None:
        self.calls.append((operation, argument))
        if self.error is not None:
            raise self.error

    async def enable_user(self, user_id: str) -> DirectoryUser:
        await self._call("enable_user", user_id)
        user = self._find(user_id)
        user.account_enabled = True
        return copy.copy(user)

    async def disable_user(self, user_id: str) -> DirectoryUser:
        await self._call("disable_user", user_id)
        user = self._find(user_id)
        user.account_enabled = False
        return copy.copy(user)

    async def get_user(self, user_id: str) -> DirectoryUser:
        await self._call("get_user", user_id)
        return copy.copy(self._find(user_id))

    async def search_users(self, display_name: str) -> List[DirectoryUser]:
        await self._call("search_users", display_name)
        return [
            copy.copy(u) for u in self.users.values() if u.display_name.startswith(display_name)
        ]

    async def aclose(self) -> None:
        self.closed = True

    def mutations(self) -> List[Tuple[str, str]]:
        return [c for c in self.calls if c[0] in ("enable_user", "disable_user")]


def text_response(content: str) -> LLMResponse:
    return LLMResponse(content=content, model="test-model")


def tool_response(*calls: Tuple[str, Union[str, Dict[str, Any]]], content: str = "") -> LLMResponse:
    """Create a response requesting the given ``(name, arguments)`` calls.

    Dict arguments are JSON-encoded; strings are passed through verbatim.
    """
    tool_calls = []
    for index, (name, arguments) in enumerate(calls):
        raw = arguments if isinstance(arguments, str) else json.dumps(arguments)
        tool_calls.append(ToolCall(id=f"call_{name}_{index}", name=name, arguments=raw))
    return LLMResponse(content=content, model="test-model", tool_calls=tool_calls)


class ScriptedProvider(LLMProvider):
    """Provider that replays a fixed list of responses.

    An exception in the script is raised instead of returned. Once the script
    runs out, the last entry is repeated.
    """

    def __init__(self, script: List[Union[LLMResponse, Exception]]):
        self.script = list(script)
        self.calls: List[List[Dict[str, Any]]] = []
        self.tools_seen: List[Optional[List[Dict[str, Any]]]] = []

    @property
    def name(self) -> str:
        return "scripted"

    async def complete(self, messages, tools=None, model=None) -> LLMResponse:
        self.calls.append(copy.deepcopy(messages))
        self.tools_seen.append(tools)
        index = min(len(self.calls) - 1, len(self.script) - 1)
        step = self.script[index]
        if isinstance(step, Exception):
            raise step
        return step

    def is_available(self) -> bool:
        return True


class FakeAuditStore(AuditStore):
    """In-memory immudb stand-in with switchable failures."""

    def __init__(self):
        self.kv: Dict[str, str] = {}
        self.statements: List[str] = []
        self.rows: List[Tuple[Any, ...]] = []
        self.tables: List[str] = []
        self.connect_count = 0
        self.connect_delay = 0.0
        self.fail_connect = False
        self.fail_kv = False
        self.fail_sql = False
        self.fail_ddl = False
        self.closed = False

    async def connect(self) -> None:
        self.connect_count += 1
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.fail_connect:
            raise ConnectionError("connection refused")

    async def set(self, key: str, value: str) -> None:
        if self.fail_kv:
            raise RuntimeError("kv write rejected")
        self.kv[key] = value

    async def sql_exec(self, sql: str) -> None:
        if sql.startswith("CREATE TABLE"):
            if self.fail_ddl:
                raise RuntimeError("ddl rejected")
            self.tables.append("mcp_actions")
        elif self.fail_sql:
            raise RuntimeError("sql insert rejected")
        self.statements.append(sql)

    async def scan(self, prefix: str, limit: int, desc: bool = True) -> List[Tuple[str, str]]:
        keys = sorted((k for k in self.kv if k.startswith(prefix)), reverse=desc)
        return [(k, self.kv[k]) for k in keys[:limit]]

    async def sql_query(self, sql: str) -> List[Tuple[Any, ...]]:
        if self.fail_sql:
            raise RuntimeError("table not found")
        return list(self.rows)

    async def list_tables(self) -> List[str]:
        return list(self.tables)

    async def close(self) -> None:
        self.closed = True

    def inserts(self) -> List[str]:
        return [s for s in self.statements if s.startswith("INSERT")]
